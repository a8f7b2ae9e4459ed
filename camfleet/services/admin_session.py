# camfleet/services/admin_session.py
"""
Admin mode: a shared-password switch that exposes the mutation endpoints.
The flag lives in the caller's session store (the signed session cookie for
HTTP clients), so each browser logs in on its own. It is not an authorization
boundary.
"""

import secrets
from typing import MutableMapping, Optional
from camfleet.config import settings
from camfleet.utils.logger import get_logger

logger = get_logger(__name__)

WRONG_PASSWORD = "Senha incorreta. Tente novamente."
SESSION_KEY = "is_admin"


class AdminSession:
    def __init__(self, store: Optional[MutableMapping] = None, password: str = None):
        self._store = store if store is not None else {}
        self._password = password if password is not None else settings.ADMIN_PASSWORD

    @property
    def is_admin(self) -> bool:
        return bool(self._store.get(SESSION_KEY))

    def login(self, password: str) -> bool:
        ok = secrets.compare_digest((password or "").encode(), self._password.encode())
        if ok:
            self._store[SESSION_KEY] = True
            logger.info("[ADMIN] Admin mode enabled")
        else:
            logger.warning("[ADMIN] Login attempt with wrong password")
        return ok

    def logout(self):
        if self.is_admin:
            logger.info("[ADMIN] Admin mode disabled")
        self._store.pop(SESSION_KEY, None)
