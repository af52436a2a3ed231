"""
Thin wrapper around ldap3 for the two things the application needs from
Active Directory: verifying a user's password and listing user accounts.

ldap3 is blocking, so the public coroutines run it in the threadpool.
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from ldap3 import SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPBindError, LDAPException
from ldap3.utils.conv import escape_filter_chars
from starlette.concurrency import run_in_threadpool

from elitetime.core.config import Settings, settings as app_settings
from elitetime.core.exceptions import UnexpectedError

logger = logging.getLogger(__name__)

USER_SEARCH_FILTER = "(&(objectClass=user)(!(sAMAccountName=*$)))"
EXCLUDED_ACCOUNTS = frozenset({"krbtgt", "administrateur", "invité", "invite", "guest", "administrator"})
USER_ATTRIBUTES = ["cn", "sAMAccountName", "mail", "givenName", "sn", "department", "title", "userAccountControl"]
ACCOUNT_DISABLED_FLAG = 0x2


@dataclass
class DirectoryEntry:
    username: str
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    department: Optional[str] = None
    title: Optional[str] = None
    active: bool = True
    dn: Optional[str] = None


def _value(entry: Any, attribute: str) -> Optional[str]:
    raw = entry.get(attribute) if hasattr(entry, "get") else None
    if isinstance(raw, (list, tuple)):
        raw = raw[0] if raw else None
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def entry_from_attributes(attributes: dict, dn: Optional[str] = None) -> Optional[DirectoryEntry]:
    """Build a DirectoryEntry from raw LDAP attributes; None for unusable entries."""
    username = _value(attributes, "sAMAccountName")
    if not username:
        return None

    firstname = _value(attributes, "givenName")
    lastname = _value(attributes, "sn")
    if not firstname and not lastname:
        cn = _value(attributes, "cn") or ""
        parts = cn.split(" ", 1)
        firstname = parts[0] or None
        lastname = parts[1] if len(parts) > 1 else None

    flags = _value(attributes, "userAccountControl")
    try:
        disabled = bool(int(flags) & ACCOUNT_DISABLED_FLAG) if flags else False
    except ValueError:
        disabled = False

    email = _value(attributes, "mail")
    return DirectoryEntry(
        username=username,
        email=email.lower() if email else None,
        firstname=firstname,
        lastname=lastname,
        department=_value(attributes, "department"),
        title=_value(attributes, "title"),
        active=not disabled,
        dn=dn,
    )


class DirectoryClient:
    def __init__(self, config: Settings = app_settings):
        self.url = config.LDAP_URL
        self.bind_dn = config.LDAP_BIND_DN
        self.bind_password = config.LDAP_PWD
        self.base_dn = config.LDAP_BASE_DN

    @property
    def configured(self) -> bool:
        return all([self.url, self.bind_dn, self.bind_password, self.base_dn])

    def _service_connection(self) -> Connection:
        if not self.configured:
            raise UnexpectedError("Configuration LDAP manquante")
        server = Server(self.url, get_info=None)
        return Connection(server, user=self.bind_dn, password=self.bind_password, auto_bind=True)

    # ---------- Authentication ----------
    def _authenticate(self, username: str, password: str) -> Optional[DirectoryEntry]:
        conn = self._service_connection()
        try:
            conn.search(
                self.base_dn,
                f"(sAMAccountName={escape_filter_chars(username)})",
                search_scope=SUBTREE,
                attributes=USER_ATTRIBUTES,
            )
            if not conn.entries:
                logger.info(f"LDAP: user '{username}' not found")
                return None
            found = conn.entries[0]
            user_dn = found.entry_dn
            attributes = found.entry_attributes_as_dict
        finally:
            conn.unbind()

        user_conn = Connection(Server(self.url, get_info=None), user=user_dn, password=password)
        try:
            if not user_conn.bind():
                logger.info(f"LDAP: invalid credentials for '{username}'")
                return None
        except LDAPBindError:
            logger.info(f"LDAP: invalid credentials for '{username}'")
            return None
        finally:
            user_conn.unbind()

        return entry_from_attributes(attributes, dn=user_dn)

    async def authenticate(self, username: str, password: str) -> Optional[DirectoryEntry]:
        """Verify credentials; the directory entry on success, None otherwise."""
        if not password:
            return None
        try:
            return await run_in_threadpool(self._authenticate, username, password)
        except LDAPException as e:
            logger.error(f"LDAP authentication error for '{username}': {e}")
            raise UnexpectedError("Erreur de connexion à l'annuaire", details=str(e))

    # ---------- Listing ----------
    def _search_users(self) -> List[DirectoryEntry]:
        conn = self._service_connection()
        try:
            entries = conn.extend.standard.paged_search(
                self.base_dn,
                USER_SEARCH_FILTER,
                search_scope=SUBTREE,
                attributes=USER_ATTRIBUTES,
                paged_size=500,
                generator=False,
            )
            users = []
            for raw in entries:
                if raw.get("type") != "searchResEntry":
                    continue
                entry = entry_from_attributes(raw.get("attributes") or {}, dn=raw.get("dn"))
                if entry is None or entry.username.lower() in EXCLUDED_ACCOUNTS:
                    continue
                users.append(entry)
            return users
        finally:
            conn.unbind()

    async def search_users(self) -> List[DirectoryEntry]:
        try:
            return await run_in_threadpool(self._search_users)
        except LDAPException as e:
            logger.error(f"LDAP search error: {e}")
            raise UnexpectedError("Erreur lors de la recherche dans l'annuaire", details=str(e))


def get_directory_client() -> DirectoryClient:
    return DirectoryClient()
