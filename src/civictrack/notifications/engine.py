"""Notification message rendering from YAML templates."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from civictrack.notifications.models import NotificationTemplate

_DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parents[3] / "config" / "notification_templates.yml"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class NotificationEngine:
    """Renders a title and message for each notification type.

    Templates are keyed by notification type (``report.misrouted`` ...).
    Types without a template fall back to the type string itself.
    """

    def __init__(self, templates_path: str | Path | None = None) -> None:
        self._templates: dict[str, NotificationTemplate] = {}
        self._load_templates(Path(templates_path) if templates_path else _DEFAULT_TEMPLATES_PATH)

    def _load_templates(self, path: Path) -> None:
        if not path.exists():
            return
        with open(path) as fh:
            data = yaml.safe_load(fh) or {}
        for tmpl_id, tmpl_data in data.get("templates", {}).items():
            self._templates[tmpl_id] = NotificationTemplate(
                id=tmpl_id,
                title=tmpl_data.get("title", ""),
                body=tmpl_data.get("body", ""),
            )

    @property
    def templates(self) -> dict[str, NotificationTemplate]:
        return dict(self._templates)

    def render(self, notification_type: str, payload: dict[str, Any] | None = None) -> tuple[str, str]:
        """Return ``(title, message)`` for a notification."""
        context = self._context(payload or {})
        template = self._templates.get(notification_type)
        if template is None:
            return notification_type, notification_type
        return self._render(template.title, context), self._render(template.body, context)

    @staticmethod
    def _context(payload: dict[str, Any]) -> dict[str, str]:
        context = {k: str(v) for k, v in payload.items() if v is not None}
        reason = payload.get("reason")
        context["reason_suffix"] = f": {reason}" if reason else ""
        context.setdefault("officer_name", "an officer")
        return context

    @staticmethod
    def _render(template_str: str, context: dict[str, str]) -> str:
        """Single-pass ``{key}`` substitution; unknown placeholders are kept."""

        def _replace(m: re.Match) -> str:
            return context.get(m.group(1), m.group(0))

        return _PLACEHOLDER.sub(_replace, template_str)
