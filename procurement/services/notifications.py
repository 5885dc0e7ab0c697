# procurement/services/notifications.py
# Best-effort outbound messages: award notices and new-bid announcements

from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from email.message import EmailMessage
import logging
import smtplib
import time

logger = logging.getLogger(__name__)

# Plain values only; ORM objects must not cross into worker threads
Recipient = namedtuple('Recipient', ['email', 'name', 'phone'])
AwardNotice = namedtuple('AwardNotice', [
    'offer_id', 'recipient', 'item_name', 'quantity', 'unit', 'total_price', 'bid_title',
])


class NotificationDispatcher:
    """
    Sends email and SMS notifications without ever failing the caller.

    With ``async_dispatch`` every send runs on a small worker pool and the
    call returns immediately. Each message is attempted independently and
    failures are logged, never raised.
    """

    def __init__(self, mail_settings=None, batch_size=10, batch_delay=2.0,
                 async_dispatch=True, max_workers=2):
        self.mail_settings = mail_settings or {}
        self.batch_size = max(int(batch_size), 1)
        self.batch_delay = batch_delay
        self.async_dispatch = async_dispatch
        self._executor = ThreadPoolExecutor(max_workers=max_workers,
                                            thread_name_prefix='notify') if async_dispatch else None

    @classmethod
    def from_config(cls, config):
        return cls(
            mail_settings={
                'server': config.get('MAIL_SERVER'),
                'port': config.get('MAIL_PORT', 587),
                'username': config.get('MAIL_USERNAME'),
                'password': config.get('MAIL_PASSWORD'),
                'use_tls': config.get('MAIL_USE_TLS', True),
                'sender': config.get('MAIL_SENDER'),
            },
            batch_size=config.get('NOTIFICATION_BATCH_SIZE', 10),
            batch_delay=config.get('NOTIFICATION_BATCH_DELAY', 2.0),
            async_dispatch=config.get('NOTIFICATIONS_ASYNC', True),
        )

    # --- public API -------------------------------------------------------

    def notify_award(self, notice):
        self._dispatch(self._send_award, notice)

    def notify_new_bid(self, bid_title, deadline, recipients):
        if not recipients:
            logger.info(f"No verified suppliers to notify about '{bid_title}'")
            return
        self._dispatch(self._send_new_bid_batches, bid_title, deadline, list(recipients))

    def shutdown(self, wait=True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

    # --- channels ---------------------------------------------------------

    def send_email(self, to, subject, body):
        server = self.mail_settings.get('server')
        if not server:
            logger.info(f"Email to {to} (mail server not configured): {subject}")
            return

        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.mail_settings.get('sender') or self.mail_settings.get('username')
        message['To'] = to
        message.set_content(body)

        with smtplib.SMTP(server, self.mail_settings.get('port', 587), timeout=30) as smtp:
            if self.mail_settings.get('use_tls', True):
                smtp.starttls()
            if self.mail_settings.get('username'):
                smtp.login(self.mail_settings['username'], self.mail_settings.get('password') or '')
            smtp.send_message(message)
        logger.info(f"Email sent to {to}: {subject}")

    def send_sms(self, to, message):
        # No SMS gateway is integrated yet; messages are recorded in the log
        logger.info(f"SMS to {to}: {message}")

    # --- internals --------------------------------------------------------

    def _dispatch(self, fn, *args):
        if self._executor is None:
            self._run_safely(fn, *args)
            return
        try:
            self._executor.submit(self._run_safely, fn, *args)
        except RuntimeError as e:
            logger.error(f"Notification dropped, dispatcher is shut down: {e}")

    def _run_safely(self, fn, *args):
        try:
            fn(*args)
        except Exception:
            logger.exception(f"Notification task {fn.__name__} failed")

    def _send_award(self, notice):
        recipient = notice.recipient
        subject = f"Your offer for {notice.item_name} has been accepted"
        body = (
            f"Hello {recipient.name or 'Supplier'},\n\n"
            f"Your offer for {notice.quantity} {notice.unit} of {notice.item_name}"
            f" ({notice.bid_title}) has been selected.\n"
            f"Total amount: {notice.total_price}\n\n"
            f"Please log in to arrange delivery."
        )
        if recipient.email:
            try:
                self.send_email(recipient.email, subject, body)
            except Exception:
                logger.exception(f"Award email for offer {notice.offer_id} to {recipient.email} failed")
        if recipient.phone:
            try:
                self.send_sms(
                    recipient.phone,
                    f"Your offer for {notice.item_name} was accepted. Total: {notice.total_price}.",
                )
            except Exception:
                logger.exception(f"Award SMS for offer {notice.offer_id} to {recipient.phone} failed")

    def _send_new_bid_batches(self, bid_title, deadline, recipients):
        deadline_text = deadline.strftime('%a %b %d %Y') if deadline else 'N/A'
        subject = f"New Bid Opportunity: {bid_title}"
        logger.info(f"Starting new-bid notifications to {len(recipients)} suppliers...")

        for start in range(0, len(recipients), self.batch_size):
            batch = recipients[start:start + self.batch_size]
            logger.info(f"Sending batch {start // self.batch_size + 1} ({len(batch)} suppliers)...")
            for recipient in batch:
                body = (
                    f"Hello {recipient.name or 'Valued Supplier'},\n\n"
                    f"A new bid is open: {bid_title}\n"
                    f"Deadline: {deadline_text}\n\n"
                    f"Submit your offer before the deadline."
                )
                if recipient.email:
                    try:
                        self.send_email(recipient.email, subject, body)
                    except Exception:
                        logger.exception(f"New-bid email to {recipient.email} failed")
                if recipient.phone:
                    try:
                        self.send_sms(
                            recipient.phone,
                            f'Hi {recipient.name or "Supplier"}, new bid "{bid_title}" available. '
                            f'Deadline: {deadline_text}. Check your portal.',
                        )
                    except Exception:
                        logger.exception(f"New-bid SMS to {recipient.phone} failed")

            if start + self.batch_size < len(recipients) and self.batch_delay:
                time.sleep(self.batch_delay)

        logger.info("All new-bid notification batches processed.")


def recipient_for(user):
    return Recipient(email=user.email, name=user.display_name, phone=user.contact_phone)
