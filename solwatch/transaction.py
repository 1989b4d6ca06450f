"""Build, sign and serialize legacy Solana transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from nacl.signing import SigningKey

from .base58 import PUBKEY_LENGTH, b58decode, b58encode

SIGNATURE_LENGTH = 64
SEED_LENGTH = 32
MAX_ACCOUNTS = 256
DEFAULT_BLOCKHASH = b58encode(bytes(PUBKEY_LENGTH))
_EMPTY_SIGNATURE = bytes(SIGNATURE_LENGTH)


def _key_bytes(key: str, what: str) -> bytes:
    try:
        raw = b58decode(key)
    except (ValueError, TypeError):
        raise ValueError(f"invalid {what}: {key!r}") from None
    if len(raw) != PUBKEY_LENGTH:
        raise ValueError(f"invalid {what}: {key!r}")
    return raw


def _shortvec(length: int) -> bytes:
    """Encode a length in Solana's compact-u16 form."""
    if not 0 <= length <= 0xFFFF:
        raise ValueError(f"length {length} does not fit in a compact-u16")
    out = bytearray()
    while True:
        byte = length & 0x7F
        length >>= 7
        if length:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


class Keypair:
    """An ed25519 signing key with its base58 public key."""

    __slots__ = ("_signing_key",)

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key

    @staticmethod
    def generate() -> "Keypair":
        """Create a keypair from fresh random bytes."""
        return Keypair(SigningKey.generate())

    @staticmethod
    def from_seed(seed: bytes) -> "Keypair":
        """Create a keypair from a 32-byte seed."""
        seed = bytes(seed)
        if len(seed) != SEED_LENGTH:
            raise ValueError(f"seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        return Keypair(SigningKey(seed))

    @property
    def pubkey(self) -> str:
        return b58encode(bytes(self._signing_key.verify_key))

    @property
    def seed(self) -> bytes:
        return bytes(self._signing_key)

    def sign(self, message: bytes) -> bytes:
        """Return the 64-byte detached signature of message."""
        return self._signing_key.sign(bytes(message)).signature

    def __repr__(self) -> str:
        return f"Keypair(pubkey={self.pubkey!r})"


@dataclass(frozen=True)
class AccountMeta:
    pubkey: str
    is_signer: bool
    is_writable: bool


@dataclass
class Instruction:
    program_id: str
    accounts: list[AccountMeta] = field(default_factory=list)
    data: bytes = b""


@dataclass(frozen=True)
class CompiledInstruction:
    program_id_index: int
    accounts: tuple[int, ...]
    data: bytes


@dataclass
class Message:
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int
    account_keys: list[str]
    recent_blockhash: str
    instructions: list[CompiledInstruction]

    @staticmethod
    def compile(
        instructions: Sequence[Instruction],
        payer: str,
        recent_blockhash: str = DEFAULT_BLOCKHASH,
    ) -> "Message":
        """Order the accounts of the instructions with the payer first and index them."""
        _key_bytes(payer, "payer")
        _key_bytes(recent_blockhash, "blockhash")

        # key -> [is_signer, is_writable]
        flags: dict[str, list[bool]] = {payer: [True, True]}
        for instruction in instructions:
            _key_bytes(instruction.program_id, "program id")
            flags.setdefault(instruction.program_id, [False, False])
            for meta in instruction.accounts:
                _key_bytes(meta.pubkey, "account key")
                entry = flags.setdefault(meta.pubkey, [False, False])
                entry[0] = entry[0] or meta.is_signer
                entry[1] = entry[1] or meta.is_writable

        def group(signer: bool, writable: bool) -> list[str]:
            return sorted(
                (key for key, (s, w) in flags.items() if key != payer and s == signer and w == writable),
                key=b58decode,
            )

        writable_signers = [payer, *group(True, True)]
        readonly_signers = group(True, False)
        writable_unsigned = group(False, True)
        readonly_unsigned = group(False, False)
        account_keys = writable_signers + readonly_signers + writable_unsigned + readonly_unsigned
        if len(account_keys) > MAX_ACCOUNTS:
            raise ValueError(f"too many accounts: {len(account_keys)}")

        index = {key: position for position, key in enumerate(account_keys)}
        compiled = [
            CompiledInstruction(
                program_id_index=index[instruction.program_id],
                accounts=tuple(index[meta.pubkey] for meta in instruction.accounts),
                data=bytes(instruction.data),
            )
            for instruction in instructions
        ]
        return Message(
            num_required_signatures=len(writable_signers) + len(readonly_signers),
            num_readonly_signed_accounts=len(readonly_signers),
            num_readonly_unsigned_accounts=len(readonly_unsigned),
            account_keys=account_keys,
            recent_blockhash=recent_blockhash,
            instructions=compiled,
        )

    def serialize(self) -> bytes:
        """Return the wire bytes that signers sign."""
        out = bytearray(
            (
                self.num_required_signatures,
                self.num_readonly_signed_accounts,
                self.num_readonly_unsigned_accounts,
            )
        )
        out += _shortvec(len(self.account_keys))
        for key in self.account_keys:
            out += _key_bytes(key, "account key")
        out += _key_bytes(self.recent_blockhash, "blockhash")
        out += _shortvec(len(self.instructions))
        for instruction in self.instructions:
            out.append(instruction.program_id_index)
            out += _shortvec(len(instruction.accounts))
            out += bytes(instruction.accounts)
            out += _shortvec(len(instruction.data))
            out += instruction.data
        return bytes(out)


class Transaction:
    """A message together with one signature slot per required signer."""

    def __init__(self, message: Message) -> None:
        self.message = message
        self.signatures = [_EMPTY_SIGNATURE] * message.num_required_signatures

    @property
    def is_signed(self) -> bool:
        return all(signature != _EMPTY_SIGNATURE for signature in self.signatures)

    @property
    def signature(self) -> bytes | None:
        return self.signatures[0] if self.signatures else None

    def sign(self, keypairs: Iterable[Keypair], recent_blockhash: str) -> None:
        """Sign with every keypair; all required signers must be supplied."""
        keypairs = list(keypairs)
        required = self.message.account_keys[: self.message.num_required_signatures]
        positions = []
        for keypair in keypairs:
            try:
                positions.append(required.index(keypair.pubkey))
            except ValueError:
                raise ValueError(f"keypair {keypair.pubkey} is not a required signer") from None

        if recent_blockhash != self.message.recent_blockhash:
            _key_bytes(recent_blockhash, "blockhash")
            self.message.recent_blockhash = recent_blockhash
            self.signatures = [_EMPTY_SIGNATURE] * self.message.num_required_signatures

        payload = self.message.serialize()
        for position, keypair in zip(positions, keypairs):
            self.signatures[position] = keypair.sign(payload)
        if not self.is_signed:
            raise ValueError("not enough signers")

    def serialize(self) -> bytes:
        """Return the signatures followed by the message, ready to send."""
        return (
            _shortvec(len(self.signatures))
            + b"".join(self.signatures)
            + self.message.serialize()
        )