"""
Notification templates for AgroAlert.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

from jinja2 import Environment, Undefined

from ..core.models import WEATHER_ALERT_NOTIFICATION

logger = logging.getLogger(__name__)

MISSING_VALUE = "N/A"


def _finalize(value: Any) -> Any:
    if value is None or isinstance(value, Undefined):
        return MISSING_VALUE
    return value


_environment = Environment(autoescape=False, finalize=_finalize, keep_trailing_newline=False)


@dataclass
class NotificationTemplate:
    """Subject, topic message and SMS text for one notification type."""

    notification_type: str
    subject_template: str
    body_template: str
    sms_template: str

    def _render(self, source: str, data: Dict[str, Any]) -> str:
        return _environment.from_string(source).render(**data)

    def render_subject(self, data: Dict[str, Any]) -> str:
        return self._render(self.subject_template, data)

    def render_body(self, data: Dict[str, Any]) -> str:
        return self._render(self.body_template, data)

    def render_sms(self, data: Dict[str, Any]) -> str:
        return self._render(self.sms_template, data)


WEATHER_ALERT_TEMPLATE = NotificationTemplate(
    notification_type=WEATHER_ALERT_NOTIFICATION,
    subject_template="Weather alert: {{ nivel }} - {{ fenomeno }}",
    body_template=(
        "WEATHER ALERT ON YOUR PARCEL\n"
        "Level: {{ nivel }}\n"
        "Phenomenon: {{ fenomeno }}\n"
        "Affected area: {{ areaDesc }}\n"
        "Description: {{ descripcion }}\n"
        "Urgency: {{ urgency }}\n"
        "Instructions: {{ instruction }}\n"
        "\n"
        "This is an automated notification. Please do not reply to this message."
    ),
    sms_template="ALERT: {{ nivel }} - {{ fenomeno }}. {{ descripcion }}. {{ instruction }}",
)


class TemplateEngine:
    """Renders notifications by type; unknown types fall back to raw data."""

    def __init__(self):
        self.templates: Dict[str, NotificationTemplate] = {
            WEATHER_ALERT_TEMPLATE.notification_type: WEATHER_ALERT_TEMPLATE,
        }

    def register(self, template: NotificationTemplate) -> None:
        """Add or replace a template; raises TemplateSyntaxError on bad sources."""
        for source in (template.subject_template, template.body_template, template.sms_template):
            _environment.parse(source)
        self.templates[template.notification_type] = template
        logger.debug(f"Registered template for {template.notification_type}")

    def subject(self, notification_type: str, data: Dict[str, Any]) -> str:
        template = self.templates.get(notification_type)
        if template is None:
            return f"Notification: {notification_type}"
        return template.render_subject(data)

    def topic_message(self, notification_type: str, data: Dict[str, Any]) -> str:
        template = self.templates.get(notification_type)
        if template is None:
            return json.dumps(data, default=str)
        return template.render_body(data)

    def sms_message(self, notification_type: str, data: Dict[str, Any]) -> str:
        template = self.templates.get(notification_type)
        if template is None:
            return json.dumps(data, default=str)
        return template.render_sms(data)
