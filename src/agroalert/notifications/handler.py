"""
Serverless entry point that delivers notifications through SNS.

Invoked asynchronously with the payload built by the dispatcher:
``{userId, email, phoneNumber?, notificationType, data}`` and an optional
``notificationMethod`` of ``TOPIC`` (default) or ``DIRECT_SMS``.
"""

from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import Field
from pydantic_settings import BaseSettings

from ..utils.logging import get_logger
from .templates import TemplateEngine

logger = get_logger("notifications.handler")

METHOD_TOPIC = "TOPIC"
METHOD_DIRECT_SMS = "DIRECT_SMS"


class HandlerSettings(BaseSettings):
    """Environment of the notification function."""

    sns_topic_arn: Optional[str] = Field(None, description="Topic that fans out to email/SMS subscribers")
    aws_region: str = Field("us-east-1", description="AWS region")
    sms_sender_id: str = Field("AgroAlert", description="Sender id shown on SMS")
    sms_type: str = Field("Transactional", description="SNS SMS type")


def _response(status_code: int, body: str) -> Dict[str, Any]:
    return {"statusCode": status_code, "body": body}


def publish_to_topic(
    sns_client: Any,
    settings: HandlerSettings,
    templates: TemplateEngine,
    notification_type: str,
    data: Dict[str, Any],
    user_id: str,
) -> bool:
    """Publish a formatted message to the notification topic."""
    try:
        result = sns_client.publish(
            TopicArn=settings.sns_topic_arn,
            Message=templates.topic_message(notification_type, data),
            Subject=templates.subject(notification_type, data)[:100],
            MessageAttributes={
                "notificationType": {"DataType": "String", "StringValue": notification_type},
                "userId": {"DataType": "String", "StringValue": user_id},
            },
        )
    except (ClientError, BotoCoreError) as e:
        logger.error("topic_publish_failed", user_id=user_id, error=str(e))
        return False

    logger.info("topic_published", user_id=user_id, message_id=result.get("MessageId"))
    return True


def send_sms(
    sns_client: Any,
    settings: HandlerSettings,
    templates: TemplateEngine,
    phone_number: str,
    notification_type: str,
    data: Dict[str, Any],
) -> bool:
    """Send the short SMS rendition directly to a phone number."""
    try:
        sns_client.publish(
            PhoneNumber=phone_number,
            Message=templates.sms_message(notification_type, data),
            MessageAttributes={
                "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": settings.sms_type},
                "AWS.SNS.SMS.SenderID": {"DataType": "String", "StringValue": settings.sms_sender_id},
            },
        )
    except (ClientError, BotoCoreError) as e:
        logger.error("sms_failed", error=str(e))
        return False

    logger.info("sms_sent")
    return True


def handle_notification(
    event: Dict[str, Any],
    sns_client: Any,
    settings: HandlerSettings,
    templates: Optional[TemplateEngine] = None,
) -> Dict[str, Any]:
    """
    Deliver one notification event.

    Returns:
        ``{statusCode, body}``: 400 when required fields are missing,
        500 on unexpected errors, 200 otherwise
    """
    templates = templates or TemplateEngine()
    try:
        user_id = event.get("userId")
        notification_type = event.get("notificationType")
        data = event.get("data")
        if not user_id or not notification_type or not data:
            logger.error("notification_event_incomplete", keys=sorted(event))
            return _response(400, "Missing required notification fields")

        method = event.get("notificationMethod") or METHOD_TOPIC
        phone_number = event.get("phoneNumber")
        logger.info("notification_event", user_id=user_id, notification_type=notification_type, method=method)

        if method == METHOD_TOPIC:
            if settings.sns_topic_arn:
                publish_to_topic(sns_client, settings, templates, notification_type, data, user_id)
            else:
                logger.warning("sns_topic_not_configured", user_id=user_id)
        elif method == METHOD_DIRECT_SMS:
            if phone_number:
                send_sms(sns_client, settings, templates, phone_number, notification_type, data)
            else:
                logger.warning("sms_without_phone_number", user_id=user_id)
        else:
            logger.warning("unknown_notification_method", method=method)

        return _response(200, "Notification processed")
    except Exception as e:
        logger.exception("notification_event_failed", error=str(e))
        return _response(500, "Error processing notification")


def handler(event, context):  # pragma: no cover - AWS entry point
    """AWS Lambda entry point."""
    settings = HandlerSettings()
    sns_client = boto3.client("sns", region_name=settings.aws_region)
    return handle_notification(event, sns_client, settings)
