import json
import uuid
from typing import Callable, List, Optional

from pydantic import ValidationError

from unionvote.config.settings import VotingConfigs
from unionvote.core.constants import DisplayName, Role
from unionvote.core.exceptions import NotAuthenticated, PermissionDenied, SessionEstablishFailed, StoreUnavailable
from unionvote.dto.identity import Identity
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger
from unionvote.middlewares.request_context import request_context
from unionvote.repository.base import VotingRepository
from unionvote.services.session_slot import SessionSlot

logger = get_app_logger("unionvote.session_service")


class SessionContainer:
    """In-memory holder of the current identity; observers are told about every change."""

    def __init__(self):
        self._identity: Optional[Identity] = None
        self._subscribers: List[Callable[[Optional[Identity]], None]] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._identity

    def subscribe(self, callback: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def set(self, identity: Optional[Identity]) -> None:
        self._identity = identity
        for callback in list(self._subscribers):
            try:
                callback(identity)
            except Exception as e:  # noqa: BLE001
                # an observer must not be able to undo a state change
                logger.error(f"session_subscriber_error | error={e}", exc_info=True)


class SessionManager:
    """
    Turns a verified phone number into an authenticated identity.

    The identity is written to the durable slot first and then to the
    in-memory container, so a failure never leaves a half-installed session.
    """

    def __init__(
        self,
        repository: VotingRepository,
        slot: SessionSlot,
        configs: Optional[VotingConfigs] = None,
        container: Optional[SessionContainer] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        configs = configs or VotingConfigs()
        self.repository = repository
        self.slot = slot
        self.container = container or SessionContainer()
        self.admin_phone_number = configs.ADMIN_PHONE_NUMBER
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)

    @property
    def current(self) -> Optional[Identity]:
        return self.container.current

    def _provision(self, phone_number: str) -> Identity:
        is_admin = phone_number == self.admin_phone_number
        identity = self.repository.get_member_by_phone(phone_number)
        if identity is None:
            identity = self.repository.create_member(Identity(
                id=self.id_factory(),
                phone_number=phone_number,
                display_name=DisplayName.ADMIN if is_admin else DisplayName.MEMBER,
                role=Role.ADMIN if is_admin else Role.MEMBER,
                approval_state=is_admin,
            ))
            logger.info(f"member_provisioned | member_id={identity.id} role={identity.role}")

        # Bootstrap rule for the single reserved number, whatever was stored before
        if is_admin and (identity.role != Role.ADMIN or not identity.approval_state):
            identity = self.repository.update_member(
                identity.model_copy(update={"role": Role.ADMIN, "approval_state": True})
            )
            logger.warning(f"admin_bootstrap_applied | member_id={identity.id}")
        return identity

    async def establish(self, phone_number: str) -> Identity:
        """
        Install a session for a phone number whose code was just verified.

        Raises:
            SessionEstablishFailed: identity lookup/provisioning or the slot write failed;
                the previous session, if any, is untouched
        """
        request_context.phone_number = phone_number
        try:
            identity = self._provision(phone_number)
            self.slot.write(identity.model_dump_json())
        except (StoreUnavailable, OSError) as e:
            logger.error(f"session_establish_error | phone={mask_phone_number(phone_number)} error={e}", exc_info=True)
            raise SessionEstablishFailed() from e

        self.container.set(identity)
        request_context.user_id = identity.id
        logger.info(f"session_established | member_id={identity.id} role={identity.role} approved={identity.approval_state}")
        return identity

    async def restore(self) -> Optional[Identity]:
        """
        Re-hydrate the container from the durable slot.

        Missing, unreadable or malformed slot data means "no session"; it never raises.
        """
        try:
            raw = self.slot.read()
        except (StoreUnavailable, OSError) as e:
            logger.error(f"session_restore_read_error | slot={self.slot.name} error={e}")
            self.container.set(None)
            return None

        if not raw:
            self.container.set(None)
            return None

        try:
            identity = Identity.model_validate(json.loads(raw))
        except (ValueError, ValidationError, TypeError) as e:
            logger.warning(f"session_slot_corrupt | slot={self.slot.name} error={e}")
            self._discard_slot()
            self.container.set(None)
            return None

        self.container.set(identity)
        request_context.user_id = identity.id
        return identity

    def _discard_slot(self):
        try:
            self.slot.clear()
        except (StoreUnavailable, OSError) as e:
            logger.error(f"session_slot_clear_error | slot={self.slot.name} error={e}")

    async def terminate(self) -> None:
        """Clear slot and container. Terminating without a session is a no-op."""
        identity = self.container.current
        try:
            self.slot.clear()
        finally:
            self.container.set(None)
        if identity is not None:
            logger.info(f"session_terminated | member_id={identity.id}")

    def require_identity(self) -> Identity:
        identity = self.container.current
        if identity is None:
            raise NotAuthenticated()
        return identity

    def require_privileged(self) -> Identity:
        """Approved administrators only; unapproved identities are signed in but restricted."""
        identity = self.require_identity()
        if not identity.is_privileged:
            logger.warning(f"privileged_action_denied | member_id={identity.id} role={identity.role} approved={identity.approval_state}")
            raise PermissionDenied()
        return identity
