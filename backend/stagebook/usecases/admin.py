import hmac
import logging

from ..domain.errors import UnauthorizedError

logger = logging.getLogger(__name__)


class AdminGate:
    """Process-wide admin capability, opened by the shared admin password."""

    def __init__(self, password: str) -> None:
        self._password = password
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def login(self, password: str) -> bool:
        if hmac.compare_digest(password.encode(), self._password.encode()):
            self._open = True
            logger.info("admin gate opened")
            return True
        logger.warning("admin login rejected")
        return False

    def logout(self) -> None:
        self._open = False
        logger.info("admin gate closed")

    def require(self) -> None:
        if not self._open:
            raise UnauthorizedError("admin login required")
