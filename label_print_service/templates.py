"""
Label Template Stores
=====================

Template lookup for rendering. ``InMemoryTemplateStore`` backs tests and
embedded use; ``JsonTemplateStore`` keeps templates in a JSON file under the
data directory and seeds a default template on first use.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .compiler.template import lookup
from .config import DATA_DIR
from .errors import EmptyTemplateError, MissingFieldsError, TemplateNotFoundError
from .models.template import LabelTemplate

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = LabelTemplate(
    id='DEFAULT',
    name='Default 2x1',
    is_default=True,
    required_fields=('SKU',),
    format='zpl',
    body=(
        '^XA^CI28^PW406^LL203^LH0,0\n'
        '^FO10,10^A0N,28,28^FD{{CONDITION}}^FS\n'
        '^FO230,10^A0N,36,36^FD{{PRICE}}^FS\n'
        '^FO40,60^BY2^BCN,60,N,N,N^FD{{BARCODE}}^FS\n'
        '^FO10,135^FB386,2,0,L^A0N,24,24^FD{{CARDNAME}}^FS\n'
        '^PQ1,0,1,Y\n'
        '^XZ'
    ),
)


class TemplateStore(ABC):
    """Read access to label templates."""

    @abstractmethod
    def get_template_by_name(self, name: str) -> Optional[LabelTemplate]:
        pass

    @abstractmethod
    def get_template_by_id(self, template_id: str) -> Optional[LabelTemplate]:
        pass

    @abstractmethod
    def list(self) -> List[LabelTemplate]:
        pass

    @abstractmethod
    def save(self, template: LabelTemplate) -> LabelTemplate:
        pass

    def get_default_template(self) -> Optional[LabelTemplate]:
        """The template flagged default, else the first one."""
        templates = self.list()
        for template in templates:
            if template.is_default:
                return template
        return templates[0] if templates else None


class InMemoryTemplateStore(TemplateStore):

    def __init__(self, templates: Iterable[LabelTemplate] = ()):
        self._templates: Dict[str, LabelTemplate] = {}
        self._lock = threading.Lock()
        for template in templates:
            self.save(template)

    def get_template_by_name(self, name: str) -> Optional[LabelTemplate]:
        with self._lock:
            for template in self._templates.values():
                if template.name == name:
                    return template
        return None

    def get_template_by_id(self, template_id: str) -> Optional[LabelTemplate]:
        with self._lock:
            return self._templates.get(template_id)

    def list(self) -> List[LabelTemplate]:
        with self._lock:
            return list(self._templates.values())

    def save(self, template: LabelTemplate) -> LabelTemplate:
        with self._lock:
            self._templates[template.id] = template
        return template


class JsonTemplateStore(InMemoryTemplateStore):
    """Templates persisted to ``templates.json``."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or os.path.join(DATA_DIR, 'templates.json')
        super().__init__()
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            logger.info("No template file at %s, seeding default template", self.path)
            self.save(DEFAULT_TEMPLATE)
            return

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        for item in data.get('templates', []):
            template = LabelTemplate.from_dict(item)
            self._templates[template.id] = template
        logger.info("Loaded %d label template(s) from %s", len(self._templates), self.path)

    def _write(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        tmp_path = f'{self.path}.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump({'templates': [t.to_dict() for t in self.list()]}, f, indent=2)
        os.replace(tmp_path, self.path)

    def save(self, template: LabelTemplate) -> LabelTemplate:
        super().save(template)
        self._write()
        return template


def resolve_template(store: TemplateStore, name: Optional[str] = None,
                     template_id: Optional[str] = None) -> LabelTemplate:
    """
    Find the template to render with: by id, else by name, else the default.

    Raises:
        TemplateNotFoundError: No such template
        EmptyTemplateError: Template exists but has no body
    """
    if template_id:
        template = store.get_template_by_id(template_id)
        key = template_id
    elif name:
        template = store.get_template_by_name(name)
        key = name
    else:
        template = store.get_default_template()
        key = 'default'

    if template is None:
        raise TemplateNotFoundError(key)
    if not (template.body or '').strip():
        raise EmptyTemplateError(template.name or template.id)
    return template


def check_required_fields(template: LabelTemplate, variables: Mapping[str, Any]):
    """Raise MissingFieldsError if a required field is absent or blank."""
    missing = [
        name for name in template.required_fields
        if lookup(variables, name) in (None, '')
    ]
    if missing:
        raise MissingFieldsError(missing)
