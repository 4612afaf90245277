import base64
import hashlib
import logging
from pathlib import Path

import bcrypt
import yaml

log = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def _prehash(password: str) -> bytes:
    # bcrypt only reads 72 bytes, so long passwords are reduced to a fixed-size digest
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, pw_hash: str) -> bool:
    hashed = pw_hash.encode("utf-8")
    if bcrypt.checkpw(_prehash(password), hashed):
        return True
    # users.yml files written before prehashing hold bcrypt of the raw password
    raw = password.encode("utf-8")
    return len(raw) <= BCRYPT_MAX_BYTES and bcrypt.checkpw(raw, hashed)


class CredentialStore:
    """Username to bcrypt hash mapping kept in a flat YAML file.

    The file is read on every call; new users are appended, never rewritten.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not data:
            return {}
        return {str(user): str(pw_hash) for user, pw_hash in data.items()}

    def __contains__(self, username: str) -> bool:
        return username in self.load()

    def verify(self, username: str, password: str) -> bool:
        pw_hash = self.load().get(username)
        if pw_hash is None:
            return False
        try:
            return check_password(password, pw_hash)
        except ValueError as e:
            log.warning("could not check password for %s against the stored hash: %s", username, e)
            return False

    def register(self, username: str, password: str) -> None:
        line = yaml.safe_dump({username: hash_password(password)}, default_flow_style=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write("\n")
            f.write(line)
        log.info("registered user %s", username)
