import logging
from typing import List

from shared.errors import NotFound
from shared.results import DeleteResult, NotificationOutcome, OperationResult
from shared.state_machine import PaymentStateMachine, PaymentStatus
from .backends.base import StorageBackend
from .file_store import LocalFileStore
from .models import Registration

logger = logging.getLogger(__name__)


class RegistrationManager:
    """
    Manages the registration lifecycle:
    - Accept submissions into the store
    - Verify or reject payments (pending -> verified / rejected)
    - Notify the registrant once their payment is verified
    - Delete a registration together with its evidence files

    The manager is the only caller of the store. Store failures propagate
    unchanged; only notification and file cleanup failures are downgraded
    to warnings on the returned result. ``verify`` and ``reject`` also raise
    ``TransitionError`` when the registration is already in the other
    terminal state.
    """

    def __init__(
        self,
        store: StorageBackend,
        files: LocalFileStore,
        notifier=None,
        event_name: str = 'RPL'
    ):
        self.store = store
        self.files = files
        self.notifier = notifier
        self.event_name = event_name

    def submit(self, record: Registration) -> int:
        """Store a new registration; required fields are checked upstream."""
        return self.store.insert(record)

    def list_registrations(self) -> List[Registration]:
        return self.store.list_all()

    def get_registration(self, registration_id: int) -> Registration:
        registration = self.store.get_by_id(registration_id)
        if registration is None:
            raise NotFound(registration_id)
        return registration

    def _transition(self, registration_id: int, action: str) -> PaymentStatus:
        registration = self.get_registration(registration_id)
        sm = PaymentStateMachine.from_state_string(registration.payment_status)
        return sm.transition(action)

    def verify(self, registration_id: int) -> OperationResult:
        """Mark the payment verified, then try to email the registrant."""
        self._transition(registration_id, 'verify')
        self.store.mark_verified(registration_id)
        registration = self.store.get_by_id(registration_id)

        result = OperationResult(
            action='verify',
            registration_id=registration_id,
            registration=registration
        )

        if self.notifier is None or registration is None or not registration.player_email:
            result.notification = NotificationOutcome.SKIPPED
            return result

        try:
            self.notifier.send(
                registration.player_email,
                self.verification_subject(),
                self.verification_body(registration)
            )
            result.notification = NotificationOutcome.SENT
        except Exception as e:
            logger.warning(f"Email send failed (non-fatal) for registration {registration_id}: {e}")
            result.notification = NotificationOutcome.FAILED
            result.warn(f"Verification email to {registration.player_email} failed: {e}")

        return result

    def reject(self, registration_id: int) -> OperationResult:
        self._transition(registration_id, 'reject')
        self.store.mark_rejected(registration_id)
        return OperationResult(
            action='reject',
            registration_id=registration_id,
            registration=self.store.get_by_id(registration_id)
        )

    def delete(self, registration_id: int) -> DeleteResult:
        """
        Delete a registration and its evidence files.

        Files go first; a file that cannot be removed is reported and left
        behind. The record is removed last so it never points at files
        that no longer exist.
        """
        registration = self.get_registration(registration_id)
        result = DeleteResult(action='delete', registration_id=registration_id)

        for field_name, reference in registration.evidence_files().items():
            try:
                if self.files.delete(reference):
                    result.removed_files.append(reference)
            except OSError as e:
                logger.warning(f"Failed to remove {field_name} file {reference}: {e}")
                result.failed_files.append(reference)
                result.warn(f"Could not remove {field_name} file {reference}: {e}")

        self.store.delete_by_id(registration_id)
        return result

    def verification_subject(self) -> str:
        return f"{self.event_name} Registration Verified"

    def verification_body(self, registration: Registration) -> str:
        return (
            f"Hi {registration.player_name or 'there'},\n\n"
            f"Your registration for {self.event_name} has been VERIFIED. "
            f"Payment and details confirmed.\n\n"
            f"Regards,\n{self.event_name} Management"
        )
