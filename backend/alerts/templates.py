"""
Alert templates — named threshold presets applied to whole categories.
"""

import threading
import uuid

import structlog

from core.errors import InvalidTransition, NotFound
from inventory.models import AlertTemplate
from inventory.thresholds import ThresholdStore, validate_band

logger = structlog.get_logger()


class TemplateLibrary:
    def __init__(self, thresholds: ThresholdStore):
        self.thresholds = thresholds
        self._templates: dict[uuid.UUID, AlertTemplate] = {}
        self._lock = threading.Lock()

    def save(self, template: AlertTemplate) -> AlertTemplate:
        validate_band(
            template.min_stock,
            template.max_stock,
            template.auto_replenish,
            template.replenish_amount,
        )
        with self._lock:
            self._templates[template.id] = template
        logger.info("templates.saved", template_id=str(template.id), name=template.name)
        return template

    def get(self, template_id: uuid.UUID) -> AlertTemplate:
        with self._lock:
            template = self._templates.get(template_id)
        if template is None:
            raise NotFound("Alert template", template_id)
        return template

    def list_templates(self, active_only: bool = False) -> list[AlertTemplate]:
        with self._lock:
            templates = list(self._templates.values())
        if active_only:
            templates = [t for t in templates if t.is_active]
        return templates

    def apply(self, template_id: uuid.UUID, categories: list[str] | None = None) -> int:
        """Write the template's band to each category. Returns categories updated."""
        template = self.get(template_id)
        if not template.is_active:
            raise InvalidTransition("alert template", "inactive", "applied")
        targets = list(categories) if categories else list(template.categories)
        if not targets:
            return 0
        updated = self.thresholds.set_batch(targets, template.threshold_fields())
        logger.info("templates.applied", template_id=str(template_id), categories=targets)
        return updated
