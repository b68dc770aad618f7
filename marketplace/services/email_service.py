import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, config):
        self.smtp_host = config.get('SMTP_HOST')
        self.smtp_port = config.get('SMTP_PORT')
        self.smtp_user = config.get('SMTP_USER')
        self.smtp_password = config.get('SMTP_PASSWORD')
        self.from_email = config.get('SENDER_EMAIL')
        self.sender_name = config.get('SENDER_NAME')
        self.project_name = config.get('PROJECT_NAME')
        self.frontend_url = config.get('FRONTEND_URL')

    @property
    def is_configured(self):
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def send_email(self, recipient_email, subject, html_body, plain_body=None):
        """
        Send an email to a specific recipient using SMTP

        Args:
            recipient_email (str): The email address of the recipient
            subject (str): The subject of the email
            html_body (str): The HTML body content of the email
            plain_body (str): The plain text body content (optional)

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.error(f"Email service not configured, cannot send '{subject}' to {recipient_email}")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = f"{self.project_name} - {subject}"
            msg['From'] = f"{self.sender_name} <{self.from_email}>"
            msg['To'] = recipient_email

            if plain_body is None:
                plain_body = html_body.replace('<p>', '').replace('</p>', '\n\n').replace('<strong>', '').replace('</strong>', '')

            html_content = f"""
            <html>
                <body style="font-family: Arial, sans-serif; margin: 0; padding: 20px;">
                    <div style="max-width: 600px; margin: 0 auto; background: white; padding: 20px; border-radius: 5px;">
                        <h1 style="color: #333;">{subject}</h1>
                        <div style="color: #666;">
                            {html_body}
                        </div>
                        <hr style="margin: 20px 0;">
                        <div style="color: #999; font-size: 12px;">
                            This is an automated message from {self.project_name}, please do not reply.
                        </div>
                    </div>
                </body>
            </html>
            """

            msg.attach(MIMEText(plain_body, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

                logger.info(f"Email sent successfully to {recipient_email}")
                return True

        except Exception as e:
            logger.error(f"Failed to send email to {recipient_email}: {str(e)}")
            return False

    def send_reset_password_email(self, email, username, reset_token):
        reset_url = f"{self.frontend_url}/reset-password?token={reset_token}"
        body = (
            f"<p>Hello {username},</p>"
            f"<p>Click the link below to reset your password:</p>"
            f'<p><a href="{reset_url}">Reset Password</a></p>'
            f"<p>This link will expire in 1 hour.</p>"
            f"<p>If you didn't request this, please ignore this email.</p>"
        )
        return self.send_email(email, "Password Reset Request", body)

    def send_password_reset_confirmation(self, email, username):
        body = (
            f"<p>Hello {username},</p>"
            f"<p>Your password has been successfully reset.</p>"
            f"<p>If you didn't make this change, please contact our support team immediately.</p>"
        )
        return self.send_email(email, "Password Reset Successful", body)

    def send_password_change_confirmation(self, email, username):
        changed_at = datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')
        body = (
            f"<p>Hello {username},</p>"
            f"<p>Your account password has been successfully changed on <strong>{changed_at}</strong>.</p>"
            f"<p>If you did NOT make this change, please contact our support team immediately.</p>"
        )
        return self.send_email(email, "Password Changed Successfully", body)
