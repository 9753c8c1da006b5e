"""
Status workflow configuration.

Statuses, their categories (quote / order) and the allowed transitions between
them are data, loaded from config/status_workflow.json (or the file named by the
STATUS_WORKFLOW_PATH setting), validated once and cached.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)

CATEGORIES = ('quote', 'order')


class StatusConfigError(Exception):
    """Base exception for status workflow configuration errors"""
    pass


class ConfigurationError(StatusConfigError):
    """Raised when the configuration file cannot be read or parsed"""
    pass


class ValidationError(StatusConfigError):
    """Raised when the workflow configuration is inconsistent"""
    pass


@dataclass(frozen=True)
class StatusDefinition:
    name: str
    category: str
    label: str
    order: int = 0
    allowed_transitions: Tuple[str, ...] = ()
    is_terminal: bool = False
    is_successful: bool = False
    triggers_email: bool = False
    email_template: Optional[str] = None
    counts_as_order: bool = False


@dataclass
class StatusWorkflow:
    statuses: Dict[str, StatusDefinition] = field(default_factory=dict)
    defaults: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: dict) -> 'StatusWorkflow':
        statuses = {}
        for category, entries in config['categories'].items():
            for name, raw in entries.items():
                statuses[name] = StatusDefinition(
                    name=name,
                    category=category,
                    label=raw.get('label', name.replace('_', ' ').title()),
                    order=int(raw.get('order', 0)),
                    allowed_transitions=tuple(raw.get('allowed_transitions', [])),
                    is_terminal=bool(raw.get('is_terminal', False)),
                    is_successful=bool(raw.get('is_successful', False)),
                    triggers_email=bool(raw.get('triggers_email', False)),
                    email_template=raw.get('email_template'),
                    counts_as_order=bool(raw.get('counts_as_order', category == 'order')),
                )
        return cls(statuses=statuses, defaults=dict(config.get('defaults', {})))

    def get(self, status: str) -> Optional[StatusDefinition]:
        return self.statuses.get(status)

    def category_of(self, status: str) -> Optional[str]:
        definition = self.get(status)
        return definition.category if definition else None

    def allowed_transitions(self, status: str) -> Tuple[str, ...]:
        definition = self.get(status)
        return definition.allowed_transitions if definition else ()

    def can_transition(self, from_status: str, to_status: str) -> bool:
        return to_status in self.allowed_transitions(from_status) and to_status in self.statuses

    def is_terminal(self, status: str) -> bool:
        definition = self.get(status)
        return bool(definition and definition.is_terminal)

    def counts_as_order(self, status: str) -> bool:
        definition = self.get(status)
        return bool(definition and definition.counts_as_order)

    def default_status(self, category: str = 'quote') -> str:
        return self.defaults[category]

    def statuses_for(self, category: str) -> List[StatusDefinition]:
        return sorted((s for s in self.statuses.values() if s.category == category), key=lambda s: s.order)

    def order_statuses(self) -> List[str]:
        return [s.name for s in self.statuses.values() if s.counts_as_order]


def load_status_config(config_path: str = None) -> dict:
    """
    Load the status workflow from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be found, read or parsed
    """
    if config_path is None:
        config_path = getattr(settings, 'STATUS_WORKFLOW_PATH', None)
    if config_path is None:
        config_path = Path(__file__).parent.parent / "config" / "status_workflow.json"

    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Status workflow configuration file not found: {config_path}")
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in status workflow file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Error reading status workflow configuration: {e}")

    logger.info("Loaded status workflow from %s", config_path)
    return config


def validate_status_config(config: dict) -> List[str]:
    """
    Check that the workflow is complete and consistent.

    Returns:
        List[str]: validation errors (empty if valid)
    """
    errors = []
    for key in ('version', 'defaults', 'categories'):
        if key not in config:
            errors.append(f"Missing required top-level key: {key}")
    categories = config.get('categories')
    if not isinstance(categories, dict):
        return errors

    seen: Dict[str, str] = {}
    for category, entries in categories.items():
        if category not in CATEGORIES:
            errors.append(f"Unknown category: {category}")
        if not isinstance(entries, dict) or not entries:
            errors.append(f"Category {category} must define at least one status")
            continue
        for name, raw in entries.items():
            if name in seen:
                errors.append(f"Status {name} appears in both {seen[name]} and {category}")
            seen[name] = category
            if not isinstance(raw, dict):
                errors.append(f"Status {category}.{name} must be an object")
                continue
            transitions = raw.get('allowed_transitions')
            if not isinstance(transitions, list):
                errors.append(f"Status {category}.{name} is missing allowed_transitions")
            elif raw.get('is_terminal') and transitions:
                errors.append(f"Terminal status {name} cannot have outgoing transitions")
            if raw.get('triggers_email') and not raw.get('email_template'):
                errors.append(f"Status {name} triggers email but has no email_template")

    for category, entries in categories.items():
        if not isinstance(entries, dict):
            continue
        for name, raw in entries.items():
            for target in (raw.get('allowed_transitions') or []) if isinstance(raw, dict) else []:
                if target not in seen:
                    errors.append(f"Status {name} allows transition to unknown status {target}")
                if target == name:
                    errors.append(f"Status {name} cannot transition to itself")

    for category, default in (config.get('defaults') or {}).items():
        if seen.get(default) != category:
            errors.append(f"Default status {default!r} is not a {category} status")

    if errors:
        logger.warning("Status workflow validation found %d errors", len(errors))
    return errors


def get_status_workflow() -> StatusWorkflow:
    """Cached, validated workflow."""
    if not hasattr(get_status_workflow, '_cached'):
        config = load_status_config()
        errors = validate_status_config(config)
        if errors:
            logger.error("Status workflow validation failed: %s", errors)
            raise ValidationError(f"Status workflow validation failed: {errors}")
        get_status_workflow._cached = StatusWorkflow.from_config(config)
    return get_status_workflow._cached


def clear_status_workflow_cache():
    """Drop the cached workflow (after editing the config, or in tests)."""
    if hasattr(get_status_workflow, '_cached'):
        delattr(get_status_workflow, '_cached')
