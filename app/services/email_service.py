"""
Amazon SES Email Service
"""
import boto3
import logging
import uuid
from typing import List, Optional
from botocore.exceptions import ClientError, BotoCoreError
from jinja2 import Environment, BaseLoader, TemplateNotFound
from app.core.config import settings
from app.core.exceptions import NotifierUnavailable

logger = logging.getLogger(__name__)


class TemplateLoader(BaseLoader):
    """Simple template loader for email templates"""

    def __init__(self):
        self.templates = {
            'signup_invitation': '''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ subject }}</title>
</head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9f9f9;">
    <div style="background-color: white; padding: 30px; border-radius: 8px;">
        <h1 style="color: #333; margin-bottom: 20px; font-size: 24px;">Welcome to {{ project_name }}!</h1>
        <p style="color: #666; line-height: 1.6;">
            You've been invited to join our training platform. To complete your account setup and start your journey, please click the button below:
        </p>
        <div style="text-align: center; margin: 30px 0;">
            <a href="{{ signup_link }}" style="background-color: #007bff; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; font-weight: bold; display: inline-block;">Complete Account Setup</a>
        </div>
        <p style="color: #666;">If the button above doesn't work, you can copy and paste this URL into your browser:</p>
        <p style="word-break: break-all; background: #eee; padding: 10px; border-radius: 5px;">{{ signup_link }}</p>
        <p style="color: #666;">This invitation is for <strong>{{ to_email }}</strong> and expires on <strong>{{ expiration_date }}</strong>.</p>
        <p style="color: #999; font-size: 14px;">If you weren't expecting this invitation, you can ignore this email.</p>
    </div>
</body>
</html>
            ''',
            'signup_invitation_text': '''Welcome to {{ project_name }}!

You've been invited to join our training platform. Complete your account setup here:

{{ signup_link }}

This invitation is for {{ to_email }} and expires on {{ expiration_date }}.

If you weren't expecting this invitation, you can ignore this email.
''',
        }

    def get_source(self, environment, template):
        if template not in self.templates:
            raise TemplateNotFound(template)
        source = self.templates[template]
        return source, None, lambda: True


class EmailService:
    """Amazon SES email service for sending transactional emails"""

    def __init__(self):
        """Initialize SES client"""
        self.ses_client = None
        self.env = Environment(loader=TemplateLoader(), autoescape=True)

        # Only initialize if we have AWS credentials
        if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
            try:
                self.ses_client = boto3.client(
                    'ses',
                    region_name=settings.SES_REGION,
                    aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                    aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY
                )
                logger.info(f"SES client initialized for region: {settings.SES_REGION}")
            except (BotoCoreError, ValueError) as e:
                logger.error(f"Failed to initialize SES client: {str(e)}")
                self.ses_client = None
        else:
            logger.warning("AWS credentials not configured. Email service disabled.")

    def render(self, template_name: str, **context) -> str:
        return self.env.get_template(template_name).render(
            project_name=settings.PROJECT_NAME, **context
        )

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> str:
        """
        Notifier entry point: deliver one message to one recipient.

        Returns:
            Delivery id (SES MessageId)

        Raises:
            NotifierUnavailable: if the message was not accepted
        """
        return self.send_email([to], subject, html_body, text_body)

    def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
        reply_to: Optional[str] = None
    ) -> str:
        """
        Send an email using Amazon SES

        Args:
            to_emails: List of recipient email addresses
            subject: Email subject
            html_body: HTML body content
            text_body: Plain text body content (optional)
            reply_to: Reply-to address (optional)

        Returns:
            str: SES MessageId, or a local id when sending is skipped

        Raises:
            NotifierUnavailable: if SES is not configured or rejected the message
        """
        if settings.SKIP_EMAIL_SENDING:
            logger.info(f"SKIPPING email sending - would have sent '{subject}' to: {', '.join(to_emails)}")
            return f"skipped-{uuid.uuid4()}"

        if not self.ses_client:
            logger.error("SES client not initialized. Cannot send email.")
            raise NotifierUnavailable("Email service is not configured")

        if not settings.SES_SENDER_EMAIL:
            logger.error("SES_SENDER_EMAIL not configured. Cannot send email.")
            raise NotifierUnavailable("Email sender address is not configured")

        try:
            # Prepare message
            message = {
                'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                'Body': {'Html': {'Data': html_body, 'Charset': 'UTF-8'}}
            }

            if text_body:
                message['Body']['Text'] = {'Data': text_body, 'Charset': 'UTF-8'}

            # Send email
            response = self.ses_client.send_email(
                Source=settings.SES_SENDER_EMAIL,
                Destination={'ToAddresses': to_emails},
                Message=message,
                ReplyToAddresses=[reply_to] if reply_to else []
            )

            message_id = response['MessageId']
            logger.info(f"Email sent successfully. MessageId: {message_id}")
            return message_id

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"AWS SES ClientError [{error_code}]: {error_message}")
            raise NotifierUnavailable(f"Email rejected by provider: {error_message}") from e
        except BotoCoreError as e:
            logger.error(f"AWS SES BotoCoreError: {str(e)}")
            raise NotifierUnavailable("Email provider unreachable") from e


# Singleton instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create the email service singleton"""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
