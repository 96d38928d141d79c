"""Extraction of mutual-TLS credentials from a PEM bundle."""

from __future__ import annotations

import re
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ..errors import CertificateParseError

_BOUNDARY = re.compile(r"-{5}(BEGIN|END)\s(PRIVATE\sKEY|CERTIFICATE)-{5}")

PRIVATE_KEY = "private_key"
CERTIFICATE = "certificate"


@dataclass(frozen=True, slots=True)
class CertificateBundle:
    private_key: str
    certificate: str

    def as_pem(self) -> str:
        return f"{self.certificate}\n{self.private_key}\n"


def _block_type(label: str) -> str:
    return re.sub(r"\s+", "_", label.lower())


def extract_certificate_bundle(text: str) -> CertificateBundle:
    """Split ``text`` into its private key and certificate blocks.

    The private key must open the bundle at offset 0, every END needs an
    earlier BEGIN of the same type, each type may appear once, and both
    blocks must be complete. Any violation raises
    :class:`CertificateParseError`; a partial bundle is never returned.
    """

    starts: dict[str, int] = {}
    blocks: dict[str, str] = {}
    for match in _BOUNDARY.finditer(text):
        boundary, state, label = match.group(0), match.group(1), match.group(2)
        block = _block_type(label)
        if state == "BEGIN":
            if block == PRIVATE_KEY and match.start() != 0:
                raise CertificateParseError("Private key must start at the beginning of the bundle")
            if block in starts or block in blocks:
                raise CertificateParseError(f"Duplicate {label} block")
            starts[block] = match.start()
        else:
            start = starts.pop(block, None)
            if start is None:
                raise CertificateParseError(f"END {label} without matching BEGIN")
            blocks[block] = text[start : match.start() + len(boundary)]

    missing = [name for name in (PRIVATE_KEY, CERTIFICATE) if name not in blocks]
    if missing:
        raise CertificateParseError(f"Incomplete bundle, missing: {', '.join(missing)}")
    return CertificateBundle(private_key=blocks[PRIVATE_KEY], certificate=blocks[CERTIFICATE])


def load_certificate_bundle(path: Path) -> CertificateBundle:
    return extract_certificate_bundle(Path(path).expanduser().resolve().read_text(encoding="utf-8"))


def client_ssl_context(bundle: CertificateBundle | None = None) -> ssl.SSLContext:
    """Default TLS context, presenting ``bundle`` as the client identity when given."""

    context = ssl.create_default_context()
    if bundle is None:
        return context
    # load_cert_chain only reads from files
    with tempfile.TemporaryDirectory(prefix="outage-herald-") as tmp:
        pem_path = Path(tmp) / "client.pem"
        pem_path.write_text(bundle.as_pem(), encoding="utf-8")
        pem_path.chmod(0o600)
        context.load_cert_chain(certfile=str(pem_path))
    return context


__all__ = [
    "CertificateBundle",
    "client_ssl_context",
    "extract_certificate_bundle",
    "load_certificate_bundle",
]
