"""SSH key pair provisioning for kitchen-zone."""

from __future__ import annotations

import fcntl
import threading
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from zonekit.constants import DEFAULT_KEY_BITS
from zonekit.utils import ensure_directory, log, write_private_file

# Serialises generation between threads of this process; the lock file next
# to the private key covers separate processes sharing the same key location.
SSH_KEY_MUTEX = threading.Lock()


class KeyPairProvisioner:
    """Make sure both halves of the kitchen key pair exist on disk."""

    def __init__(self, public_key: Path, private_key: Path, comment: str, bits: int = DEFAULT_KEY_BITS) -> None:
        self.public_key = public_key
        self.private_key = private_key
        self.comment = comment
        self.bits = bits

    @property
    def lock_path(self) -> Path:
        return self.private_key.with_name(self.private_key.name + ".lock")

    def exists(self) -> bool:
        return self.public_key.exists() and self.private_key.exists()

    def ensure(self) -> None:
        if self.exists():
            return
        with SSH_KEY_MUTEX:
            ensure_directory(self.lock_path.parent)
            with open(self.lock_path, "a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    # Another caller may have finished while we waited.
                    if self.exists():
                        return
                    self._generate()
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def read_public_key(self) -> str:
        return self.public_key.read_text(encoding="utf-8").strip()

    def _generate(self) -> None:
        log("INFO", f"Generating {self.bits}-bit RSA key pair at {self.private_key}")
        key = rsa.generate_private_key(public_exponent=65537, key_size=self.bits)
        private_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        public_line = key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        ).decode("ascii")
        # Private half first: exists() only reports success once the public half lands.
        write_private_file(self.private_key, private_pem)
        write_private_file(self.public_key, f"{public_line} {self.comment}\n")
        log("SUCCESS", f"SSH key pair written ({self.public_key.name}, {self.private_key.name})")
