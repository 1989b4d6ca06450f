import pytest
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from solwatch.base58 import b58decode, b58encode, is_valid_pubkey
from solwatch.transaction import (
    DEFAULT_BLOCKHASH,
    AccountMeta,
    Instruction,
    Keypair,
    Message,
    Transaction,
)


def key(n):
    return Keypair.from_seed(bytes([n]) * 32)


BLOCKHASH = b58encode(bytes(range(32)))
OTHER_BLOCKHASH = b58encode(bytes(range(32, 64)))


def verify(pubkey, message, signature):
    return VerifyKey(b58decode(pubkey)).verify(message, signature)


def test_from_seed_is_deterministic():
    assert key(1).pubkey == key(1).pubkey
    assert key(1).pubkey != key(2).pubkey
    assert is_valid_pubkey(key(1).pubkey)
    assert key(3).seed == bytes([3]) * 32


def test_from_seed_rejects_wrong_length():
    with pytest.raises(ValueError):
        Keypair.from_seed(b"short")


def test_generate_gives_distinct_keys():
    first, second = Keypair.generate(), Keypair.generate()
    assert len(first.seed) == 32
    assert is_valid_pubkey(first.pubkey)
    assert Keypair.from_seed(first.seed).pubkey == first.pubkey
    assert Keypair.from_seed(second.seed).pubkey == second.pubkey
    assert first.seed != second.seed
    assert first.pubkey != second.pubkey
    signature = first.sign(b"payload")
    assert verify(first.pubkey, b"payload", signature) == b"payload"


def test_sign_verifies_and_detects_tampering():
    keypair = key(4)
    signature = keypair.sign(b"hello")
    assert len(signature) == 64
    assert verify(keypair.pubkey, b"hello", signature) == b"hello"
    with pytest.raises(BadSignatureError):
        verify(keypair.pubkey, b"hellp", signature)


def test_payer_only_message_wire_bytes():
    payer = key(1).pubkey
    message = Message.compile([], payer)
    assert message.recent_blockhash == DEFAULT_BLOCKHASH
    assert message.serialize() == bytes([1, 0, 0, 1]) + b58decode(payer) + bytes(32) + bytes([0])


def test_compile_orders_accounts():
    payer, signer, writable, readonly, program = (key(n).pubkey for n in range(1, 6))
    instruction = Instruction(
        program,
        [
            AccountMeta(readonly, False, False),
            AccountMeta(writable, False, True),
            AccountMeta(signer, True, False),
        ],
        b"\x01",
    )
    message = Message.compile([instruction], payer, BLOCKHASH)
    keys = message.account_keys
    assert keys[:3] == [payer, signer, writable]
    assert set(keys[3:]) == {readonly, program}
    assert message.num_required_signatures == 2
    assert message.num_readonly_signed_accounts == 1
    assert message.num_readonly_unsigned_accounts == 2
    compiled = message.instructions[0]
    assert compiled.program_id_index == keys.index(program)
    assert compiled.accounts == (keys.index(readonly), keys.index(writable), keys.index(signer))
    assert compiled.data == b"\x01"


def test_compile_merges_duplicate_accounts():
    payer, other, program = key(1).pubkey, key(2).pubkey, key(3).pubkey
    instructions = [
        Instruction(program, [AccountMeta(other, False, False)]),
        Instruction(program, [AccountMeta(other, False, True), AccountMeta(payer, True, True)]),
    ]
    message = Message.compile(instructions, payer)
    assert message.account_keys == [payer, other, program]
    assert message.num_readonly_unsigned_accounts == 1


def test_compile_rejects_invalid_key():
    with pytest.raises(ValueError):
        Message.compile([Instruction("not-a-key")], key(1).pubkey)
    with pytest.raises(ValueError):
        Message.compile([], "0OIl")


def test_long_data_uses_multi_byte_length():
    payer, program = key(1).pubkey, key(2).pubkey
    data = bytes(200)
    serialized = Message.compile([Instruction(program, [], data)], payer).serialize()
    assert serialized.endswith(bytes([0xC8, 0x01]) + data)


def test_transaction_sign_and_serialize():
    payer = key(1)
    program = key(2).pubkey
    message = Message.compile([Instruction(program, [AccountMeta(payer.pubkey, True, True)], b"x")], payer.pubkey)
    transaction = Transaction(message)
    assert not transaction.is_signed
    transaction.sign([payer], BLOCKHASH)
    assert transaction.is_signed
    assert transaction.message.recent_blockhash == BLOCKHASH
    payload = transaction.message.serialize()
    assert verify(payer.pubkey, payload, transaction.signature) == payload
    wire = transaction.serialize()
    assert wire[0] == 1
    assert wire[1:65] == transaction.signature
    assert wire[65:] == payload


def test_resign_with_new_blockhash_replaces_signature():
    payer = key(1)
    transaction = Transaction(Message.compile([], payer.pubkey))
    transaction.sign([payer], BLOCKHASH)
    first = transaction.signature
    transaction.sign([payer], OTHER_BLOCKHASH)
    assert transaction.signature != first
    payload = transaction.message.serialize()
    assert verify(payer.pubkey, payload, transaction.signature) == payload


def test_sign_rejects_foreign_keypair():
    transaction = Transaction(Message.compile([], key(1).pubkey))
    with pytest.raises(ValueError, match="not a required signer"):
        transaction.sign([key(2)], BLOCKHASH)


def test_sign_requires_all_signers():
    payer, cosigner = key(1), key(2)
    instruction = Instruction(key(3).pubkey, [AccountMeta(cosigner.pubkey, True, True)])
    transaction = Transaction(Message.compile([instruction], payer.pubkey))
    with pytest.raises(ValueError, match="not enough signers"):
        transaction.sign([payer], BLOCKHASH)
    transaction.sign([payer, cosigner], BLOCKHASH)
    assert transaction.is_signed