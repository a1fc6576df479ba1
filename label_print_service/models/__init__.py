"""
Label Print Service Models
"""

from .job import PrintJob, DeadLetterEntry, QUEUED, DELIVERED, DEAD_LETTERED
from .template import LabelTemplate

__all__ = ['PrintJob', 'DeadLetterEntry', 'LabelTemplate', 'QUEUED', 'DELIVERED', 'DEAD_LETTERED']
