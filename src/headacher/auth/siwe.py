"""Sign-In with Ethereum (EIP-4361) message parsing.

Learn: A SIWE message is plain text with a fixed layout:

    example.com wants you to sign in with your Ethereum account:
    0xC0FFEE...

    Optional human-readable statement.

    URI: https://example.com
    Version: 1
    Chain ID: 1
    Nonce: 32891756
    Issued At: 2021-09-30T16:25:24Z

parse() turns it into a SiweMessage; prepare() renders the canonical text
back. The signature is verified against prepare(), so a message that parses
but was not signed in canonical form is rejected.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from eth_utils import is_checksum_address, to_checksum_address

HEADER_SUFFIX = " wants you to sign in with your Ethereum account:"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
_NONCE = re.compile(r"^[A-Za-z0-9]{8,}$")
_FIELD = re.compile(
    r"^(URI|Version|Chain ID|Nonce|Issued At|Expiration Time|Not Before|Request ID): (.*)$"
)


class SiweMessageError(ValueError):
    """Raised when a message does not follow the EIP-4361 layout."""


def normalize_address(address: str) -> str:
    """Return the EIP-55 checksum form of a hex address.

    All-lowercase and all-uppercase input is accepted; mixed case must
    already carry a valid checksum.
    """
    address = (address or "").strip()
    if not _HEX_ADDRESS.match(address):
        raise ValueError("Address must be a 0x-prefixed 20-byte hex string")
    body = address[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address(address):
        raise ValueError("Address checksum is invalid")
    return to_checksum_address(address)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as e:
        raise SiweMessageError(f"Invalid timestamp: {value!r}") from e
    if moment.tzinfo is None:
        raise SiweMessageError(f"Timestamp must carry a UTC offset: {value!r}")
    return moment.astimezone(timezone.utc)


@dataclass
class SiweMessage:
    domain: str
    address: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: str
    statement: Optional[str] = None
    expiration_time: Optional[str] = None
    not_before: Optional[str] = None
    request_id: Optional[str] = None
    resources: list[str] = field(default_factory=list)

    @property
    def issued_at_dt(self) -> datetime:
        return parse_timestamp(self.issued_at)

    @property
    def expiration_time_dt(self) -> Optional[datetime]:
        return parse_timestamp(self.expiration_time) if self.expiration_time else None

    @property
    def not_before_dt(self) -> Optional[datetime]:
        return parse_timestamp(self.not_before) if self.not_before else None

    def prepare(self) -> str:
        """Render the canonical EIP-4361 text for this message."""
        prefix = "\n".join([f"{self.domain}{HEADER_SUFFIX}", self.address])

        suffix = [
            f"URI: {self.uri}",
            f"Version: {self.version}",
            f"Chain ID: {self.chain_id}",
            f"Nonce: {self.nonce}",
            f"Issued At: {self.issued_at}",
        ]
        if self.expiration_time:
            suffix.append(f"Expiration Time: {self.expiration_time}")
        if self.not_before:
            suffix.append(f"Not Before: {self.not_before}")
        if self.request_id is not None:
            suffix.append(f"Request ID: {self.request_id}")
        if self.resources:
            suffix.append("\n".join(["Resources:"] + [f"- {r}" for r in self.resources]))

        if self.statement:
            prefix = "\n\n".join([prefix, self.statement])
        else:
            prefix += "\n"
        return "\n\n".join([prefix, "\n".join(suffix)])

    @classmethod
    def parse(cls, raw: str) -> "SiweMessage":
        """Parse message text. Raises SiweMessageError on any layout problem."""
        if not raw or not isinstance(raw, str):
            raise SiweMessageError("Empty message")

        lines = raw.replace("\r\n", "\n").split("\n")
        if len(lines) < 2 or not lines[0].endswith(HEADER_SUFFIX):
            raise SiweMessageError("Missing sign-in header")

        domain = lines[0][: -len(HEADER_SUFFIX)].strip()
        if not domain:
            raise SiweMessageError("Missing domain")

        try:
            address = normalize_address(lines[1])
        except ValueError as e:
            raise SiweMessageError(str(e)) from e

        fields: dict[str, str] = {}
        statement_lines: list[str] = []
        resources: list[str] = []
        in_resources = False

        for line in lines[2:]:
            if in_resources:
                if line.startswith("- "):
                    resources.append(line[2:])
                    continue
                if line.strip():
                    raise SiweMessageError("Unexpected text after resources")
                continue
            match = _FIELD.match(line)
            if match:
                name, value = match.groups()
                if name in fields:
                    raise SiweMessageError(f"Duplicate field: {name}")
                fields[name] = value
            elif line == "Resources:":
                in_resources = True
            elif line.strip():
                if fields:
                    raise SiweMessageError(f"Unexpected line: {line!r}")
                statement_lines.append(line)

        for required in ("URI", "Version", "Chain ID", "Nonce", "Issued At"):
            if required not in fields:
                raise SiweMessageError(f"Missing field: {required}")

        if fields["Version"] != "1":
            raise SiweMessageError("Unsupported version")
        try:
            chain_id = int(fields["Chain ID"])
        except ValueError as e:
            raise SiweMessageError("Chain ID must be an integer") from e
        if not _NONCE.match(fields["Nonce"]):
            raise SiweMessageError("Nonce must be at least 8 alphanumeric characters")

        message = cls(
            domain=domain,
            address=address,
            uri=fields["URI"],
            version=fields["Version"],
            chain_id=chain_id,
            nonce=fields["Nonce"],
            issued_at=fields["Issued At"],
            statement="\n".join(statement_lines) or None,
            expiration_time=fields.get("Expiration Time"),
            not_before=fields.get("Not Before"),
            request_id=fields.get("Request ID"),
            resources=resources,
        )
        # Validate timestamp fields eagerly so callers only see SiweMessageError.
        message.issued_at_dt
        message.expiration_time_dt
        message.not_before_dt
        return message
