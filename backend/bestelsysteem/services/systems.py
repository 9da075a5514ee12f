"""
System settings: the root aggregate of every event configuration.

At most one system is live. Patron, bar, kitchen and statistics queries all
resolve the live system through this service, which caches it until the
next settings write.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from bestelsysteem.auth import ROLE_ADMIN, ROLE_USER, AuthService
from bestelsysteem.domain import SystemRecord
from bestelsysteem.exceptions import NotFoundError, ValidationError
from bestelsysteem.services.cache import KeyedCache
from bestelsysteem.storage import Storage

logger = logging.getLogger(__name__)

LIVE_KEY = "live"


@dataclass
class LoginResult:
    success: bool
    is_valid_password: bool
    role: Optional[str] = None
    access_token: Optional[str] = None
    system_id: Optional[int] = None


class SystemSettingsService:
    """Create, update, delete and log in to systems."""

    def __init__(
        self,
        storage: Storage,
        auth: AuthService,
        settings_cache: KeyedCache,
        default_user_password: str = "Bier!",
        default_admin_password: str = "admin",
        product_cache: Optional[KeyedCache] = None,
    ):
        self.storage = storage
        self.auth = auth
        self.settings_cache = settings_cache
        self.default_user_password = default_user_password
        self.default_admin_password = default_admin_password
        self.product_cache = product_cache

    def list_systems(self) -> List[SystemRecord]:
        with self.storage.transaction() as uow:
            return uow.list_systems()

    def get_system(self, system_id: int) -> SystemRecord:
        with self.storage.transaction() as uow:
            system = uow.get_system(system_id)
        if system is None:
            raise NotFoundError("System", system_id)
        return system

    def save_system(
        self,
        system_id: Optional[int] = None,
        name: str = "",
        user_password: Optional[str] = None,
        admin_password: Optional[str] = None,
        live: bool = False,
    ) -> SystemRecord:
        """
        Create (system_id None) or update a system.

        New systems without passwords get the configured defaults. Passwords
        are stored hashed; an empty password on update keeps the old one.
        Marking a system live clears the flag on all others in the same
        transaction.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("System name must not be empty")

        with self.storage.transaction() as uow:
            if system_id is None:
                system = uow.add_system(SystemRecord(
                    id=None,
                    name=name,
                    user_password=self.auth.hash_password(user_password or self.default_user_password),
                    admin_password=self.auth.hash_password(admin_password or self.default_admin_password),
                    live=live,
                ))
                action = "Created"
            else:
                system = uow.get_system(system_id)
                if system is None:
                    raise NotFoundError("System", system_id)
                system.name = name
                system.live = live
                if user_password:
                    system.user_password = self.auth.hash_password(user_password)
                if admin_password:
                    system.admin_password = self.auth.hash_password(admin_password)
                uow.update_system(system)
                action = "Updated"
            if live:
                uow.clear_live_flag(except_system_id=system.id)

        self.settings_cache.invalidate(LIVE_KEY)
        logger.info(f"[SystemSettings] {action} system {system.id} '{system.name}' (live={system.live})")
        return system

    def delete_system(self, system_id: int) -> None:
        """Delete a system with its products, bars, tables, relations and orders."""
        with self.storage.transaction() as uow:
            if uow.get_system(system_id) is None:
                raise NotFoundError("System", system_id)
            uow.delete_system(system_id)

        self.settings_cache.invalidate(LIVE_KEY)
        if self.product_cache is not None:
            self.product_cache.invalidate(system_id)
        logger.info(f"[SystemSettings] Deleted system {system_id}")

    def get_live_system(self) -> Optional[SystemRecord]:
        """The live system, or None. Cached until the next settings write."""
        return self.settings_cache.get_or_load(LIVE_KEY, self._load_live_system)

    def _load_live_system(self) -> Optional[SystemRecord]:
        with self.storage.transaction() as uow:
            return uow.get_live_system()

    def require_live_system(self) -> SystemRecord:
        system = self.get_live_system()
        if system is None:
            raise NotFoundError("Live system")
        return system

    def login(self, password: str) -> LoginResult:
        """
        Check a password against the live system.

        The admin password is tried first and grants the admin role; the
        user password grants the user role.
        """
        system = self.require_live_system()
        if self.auth.verify_password(password, system.admin_password):
            role = ROLE_ADMIN
        elif self.auth.verify_password(password, system.user_password):
            role = ROLE_USER
        else:
            logger.info(f"[SystemSettings] Rejected login for system {system.id}")
            return LoginResult(success=False, is_valid_password=False, system_id=system.id)

        token = self.auth.issue_token(system.id, role)
        logger.info(f"[SystemSettings] Login as {role} on system {system.id}")
        return LoginResult(
            success=True,
            is_valid_password=True,
            role=role,
            access_token=token,
            system_id=system.id,
        )
