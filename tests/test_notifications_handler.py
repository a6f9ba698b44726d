"""
Tests for notification rendering and the SNS delivery handler.
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from jinja2 import TemplateSyntaxError

from agroalert.notifications.handler import HandlerSettings, handle_notification
from agroalert.notifications.templates import NotificationTemplate, TemplateEngine

TOPIC_ARN = "arn:aws:sns:eu-west-1:123456789012:agroalert"

ALERT_DATA = {
    "nivel": "naranja",
    "fenomeno": "lluvias",
    "areaDesc": "Vega baja",
    "descripcion": "Acumulados de 80 mm en 12 horas",
    "instruction": "Evite zonas inundables",
}


def make_event(**overrides):
    event = {
        "userId": "u1",
        "email": "u1@example.com",
        "phoneNumber": "+34600000000",
        "notificationType": "WEATHER_ALERT",
        "data": dict(ALERT_DATA),
    }
    event.update(overrides)
    return event


@pytest.fixture
def sns_client():
    client = MagicMock()
    client.publish.return_value = {"MessageId": "msg-1"}
    return client


@pytest.fixture
def settings():
    return HandlerSettings(sns_topic_arn=TOPIC_ARN)


class TestTemplates:
    def test_weather_alert_subject(self):
        assert TemplateEngine().subject("WEATHER_ALERT", ALERT_DATA) == "Weather alert: naranja - lluvias"

    def test_weather_alert_body(self):
        body = TemplateEngine().topic_message("WEATHER_ALERT", ALERT_DATA)

        assert body.startswith("WEATHER ALERT ON YOUR PARCEL\n")
        assert "Affected area: Vega baja" in body
        assert "Instructions: Evite zonas inundables" in body

    def test_missing_fields_render_placeholder(self):
        body = TemplateEngine().topic_message("WEATHER_ALERT", {"nivel": "rojo", "urgency": None})

        assert "Phenomenon: N/A" in body
        assert "Urgency: N/A" in body

    def test_sms_rendition(self):
        sms = TemplateEngine().sms_message("WEATHER_ALERT", ALERT_DATA)

        assert sms == "ALERT: naranja - lluvias. Acumulados de 80 mm en 12 horas. Evite zonas inundables"

    def test_unknown_type_falls_back_to_raw_data(self):
        engine = TemplateEngine()

        assert engine.subject("FROST", {"t": -3}) == "Notification: FROST"
        assert engine.topic_message("FROST", {"t": -3}) == '{"t": -3}'
        assert engine.sms_message("FROST", {"t": -3}) == '{"t": -3}'

    def test_register_custom_template(self):
        engine = TemplateEngine()
        engine.register(NotificationTemplate("FROST", "Frost {{ t }}", "Frost at {{ t }} C", "{{ t }}C"))

        assert engine.subject("FROST", {"t": -3}) == "Frost -3"

    def test_register_rejects_broken_template(self):
        with pytest.raises(TemplateSyntaxError):
            TemplateEngine().register(NotificationTemplate("BAD", "{{ t ", "", ""))


class TestHandleNotification:
    def test_publishes_to_topic_by_default(self, sns_client, settings):
        response = handle_notification(make_event(), sns_client, settings)

        assert response == {"statusCode": 200, "body": "Notification processed"}
        kwargs = sns_client.publish.call_args.kwargs
        assert kwargs["TopicArn"] == TOPIC_ARN
        assert kwargs["Subject"] == "Weather alert: naranja - lluvias"
        assert kwargs["MessageAttributes"]["userId"]["StringValue"] == "u1"
        assert kwargs["MessageAttributes"]["notificationType"]["StringValue"] == "WEATHER_ALERT"

    def test_subject_is_truncated(self, sns_client, settings):
        handle_notification(make_event(data={"nivel": "x" * 200, "fenomeno": "y"}), sns_client, settings)

        assert len(sns_client.publish.call_args.kwargs["Subject"]) == 100

    def test_direct_sms(self, sns_client, settings):
        response = handle_notification(make_event(notificationMethod="DIRECT_SMS"), sns_client, settings)

        assert response["statusCode"] == 200
        kwargs = sns_client.publish.call_args.kwargs
        assert kwargs["PhoneNumber"] == "+34600000000"
        assert kwargs["Message"].startswith("ALERT: naranja - lluvias.")
        assert kwargs["MessageAttributes"]["AWS.SNS.SMS.SenderID"]["StringValue"] == "AgroAlert"
        assert kwargs["MessageAttributes"]["AWS.SNS.SMS.SMSType"]["StringValue"] == "Transactional"

    def test_direct_sms_without_phone_number_sends_nothing(self, sns_client, settings):
        event = make_event(notificationMethod="DIRECT_SMS")
        del event["phoneNumber"]

        assert handle_notification(event, sns_client, settings)["statusCode"] == 200
        sns_client.publish.assert_not_called()

    def test_topic_not_configured_sends_nothing(self, sns_client):
        response = handle_notification(make_event(), sns_client, HandlerSettings(sns_topic_arn=None))

        assert response["statusCode"] == 200
        sns_client.publish.assert_not_called()

    @pytest.mark.parametrize("missing", ["userId", "notificationType", "data"])
    def test_missing_fields_rejected(self, sns_client, settings, missing):
        event = make_event()
        del event[missing]

        assert handle_notification(event, sns_client, settings)["statusCode"] == 400
        sns_client.publish.assert_not_called()

    def test_publish_client_error_is_not_fatal(self, sns_client, settings):
        sns_client.publish.side_effect = ClientError(
            {"Error": {"Code": "AuthorizationError", "Message": "denied"}}, "Publish",
        )

        assert handle_notification(make_event(), sns_client, settings)["statusCode"] == 200

    def test_unexpected_error_returns_500(self, sns_client, settings):
        sns_client.publish.side_effect = RuntimeError("boom")

        response = handle_notification(make_event(), sns_client, settings)

        assert response == {"statusCode": 500, "body": "Error processing notification"}
