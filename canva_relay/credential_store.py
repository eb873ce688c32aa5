"""
Per-user credential store: Canva user id -> long-lived access token.
Whole store lives in memory and is rewritten to a single JSON file on every write
(array of {"id", "token"}, pretty-printed). A write builds a new snapshot, persists it
off the event loop, then swaps it in; an asyncio.Lock around that sequence keeps
concurrent callbacks from losing each other's updates.
"""
import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from canva_relay.errors import CredentialStoreError

logger = logging.getLogger(__name__)


@dataclass
class UserCredential:
    id: str
    token: str


class CredentialStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._users: list[UserCredential] = []
        self._initialized = False
        self._lock = asyncio.Lock()

    def init(self) -> None:
        """
        Load the store from disk. A missing file starts an empty store and writes it
        immediately; an unreadable or malformed file raises CredentialStoreError.
        """
        if self._initialized:
            return
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._users = []
            self._write(self._users)
            self._initialized = True
            logger.info("Created empty credential store at %s", self.path)
            return
        except OSError as e:
            raise CredentialStoreError(f"Cannot read credential store {self.path}: {e}") from e

        self._users = self._parse(raw)
        self._initialized = True
        logger.info("Loaded %d credential(s) from %s", len(self._users), self.path)

    def _parse(self, raw: str) -> list[UserCredential]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CredentialStoreError(f"Credential store {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise CredentialStoreError(f"Credential store {self.path} must hold a JSON array")
        users = []
        for entry in data:
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str) or not isinstance(entry.get("token"), str):
                raise CredentialStoreError(f"Malformed credential entry in {self.path}: {entry!r}")
            users.append(UserCredential(id=entry["id"], token=entry["token"]))
        return users

    def _find(self, identity: str) -> UserCredential | None:
        for user in self._users:
            if user.id == identity:
                return user
        return None

    def get_token(self, identity: str | None) -> str | None:
        """Token for identity, or None if unknown or the store is not loaded yet."""
        if not self._initialized or not identity:
            return None
        user = self._find(identity)
        return user.token if user else None

    async def set_token(self, identity: str, token: str) -> None:
        """Insert or overwrite the token for identity, then persist the whole store."""
        if not self._initialized:
            # persisting now would clobber whatever is on disk
            raise CredentialStoreError("Credential store used before init()")
        async with self._lock:
            users = [UserCredential(id=u.id, token=u.token) for u in self._users]
            for user in users:
                if user.id == identity:
                    user.token = token
                    break
            else:
                users.append(UserCredential(id=identity, token=token))
            # held across the write so a later update never lands on disk before an earlier one
            try:
                await asyncio.to_thread(self._write, users)
            except OSError as e:
                raise CredentialStoreError(f"Cannot write credential store {self.path}: {e}") from e
            self._users = users
        logger.info("Stored token for user %s", identity)

    def credentials(self) -> list[UserCredential]:
        return [UserCredential(id=u.id, token=u.token) for u in self._users]

    def _write(self, users: list[UserCredential]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([asdict(u) for u in users], indent=2)
        self.path.write_text(payload, encoding="utf-8")
