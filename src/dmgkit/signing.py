from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence


logger = logging.getLogger(__name__)

SECURITY = "/usr/bin/security"
CODESIGN = "/usr/bin/codesign"

IDENTITY_PATTERN = re.compile(r'^\s*\d+\)\s+([0-9A-Fa-f]{40})\s+"(.+)"\s*$', re.MULTILINE)
AUTHORITY_PATTERN = re.compile(r"^Authority=(.*)$", re.MULTILINE)
DEFAULT_IDENTITY_PREFIX = "Developer ID Application"


class SigningError(Exception):
    """Raised when identity lookup, signing or verification fails."""


@dataclass(frozen=True)
class SigningIdentity:
    sha1: str
    name: str


def _run(command: Sequence[str]) -> subprocess.CompletedProcess:
    logger.debug("Running %s", " ".join(command))
    try:
        result = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise SigningError(f"Failed to run {command[0]}: {exc}") from exc

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise SigningError(f"{Path(command[0]).name} exited with status {result.returncode}: {detail}")
    return result


def parse_identities(text: str) -> List[SigningIdentity]:
    return [
        SigningIdentity(sha1=match.group(1).upper(), name=match.group(2))
        for match in IDENTITY_PATTERN.finditer(text)
    ]


def find_identities() -> List[SigningIdentity]:
    result = _run([SECURITY, "find-identity", "-v", "-p", "codesigning"])
    identities = parse_identities(result.stdout)
    logger.debug("Found %d code signing identities", len(identities))
    return identities


def select_identity(
    identities: Sequence[SigningIdentity], preferred: Optional[str] = None
) -> SigningIdentity:
    if preferred:
        wanted = preferred.strip()
        for identity in identities:
            if identity.sha1 == wanted.upper() or wanted in identity.name:
                return identity
        raise SigningError(f"No code signing identity matches {preferred!r}")

    for identity in identities:
        if identity.name.startswith(DEFAULT_IDENTITY_PREFIX):
            return identity
    raise SigningError("No suitable code signing identity found")


def sign_image(image_path: Path, identity: SigningIdentity) -> None:
    logger.info("Code signing %s with %s", image_path, identity.name)
    _run([CODESIGN, "--sign", identity.sha1, str(image_path)])


def parse_authority(text: str) -> Optional[str]:
    match = AUTHORITY_PATTERN.search(text)
    return match.group(1).strip() if match else None


def signing_authority(image_path: Path) -> str:
    # codesign prints the signature details on stderr.
    result = _run([CODESIGN, "--display", "--verbose=2", str(image_path)])
    authority = parse_authority(result.stderr)
    if not authority:
        raise SigningError("Not code signed")
    return authority
