"""Leap raw transaction codec.

Wire layout (all integers big-endian):

    type (1) | n_inputs << 4 | n_outputs (1) | inputs... | outputs...

Inputs start with a 33-byte prevout (32-byte tx hash + 1-byte output index).
In a spending-condition transaction (type 13) input 0 is the condition input:

    prevout (33) | len(msgData) (2) | len(script) (2) | msgData | script

Every other input of a transfer or spending-condition transaction is signed:

    prevout (33) | r (32) | s (32) | v (1)

Outputs:

    value (32) | color (2) | address (20) [| data (32) for NST colors]

The signing hash is keccak-256 of the raw bytes with all signature fields
zeroed. Only transfer and spending-condition bodies are parsed; other types
decode to a Transaction carrying just the type tag.
"""

from __future__ import annotations

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak

from .errors import DecodeError
from .models import Transaction, TxInput, TxOutput

TYPE_TRANSFER = 3
TYPE_SPEND_COND = 13

NST_COLOR_START = 49153

_PREVOUT_LEN = 33
_SIG_LEN = 65
_PARSED_TYPES = (TYPE_TRANSFER, TYPE_SPEND_COND)


class _Reader:
    """Bounds-checked cursor over a raw transaction."""

    def __init__(self, buf: bytes):
        self.buf = buf
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.buf):
            raise DecodeError(
                f"truncated transaction: need {n} bytes at offset {self.pos}, "
                f"have {len(self.buf) - self.pos}"
            )
        chunk = self.buf[self.pos:end]
        self.pos = end
        return chunk

    def uint(self, n: int) -> int:
        return int.from_bytes(self.take(n), "big")


def _to_bytes(raw: str | bytes) -> bytes:
    if isinstance(raw, bytes):
        return raw
    text = raw[2:] if raw.lower().startswith("0x") else raw
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise DecodeError(f"raw transaction is not hex: {e}") from e


def _is_condition_slot(kind: int, index: int) -> bool:
    return kind == TYPE_SPEND_COND and index == 0


def signing_hash(raw: str | bytes) -> bytes:
    """Hash that signed inputs commit to."""
    return keccak(_zero_signatures(_to_bytes(raw)))


def _zero_signatures(buf: bytes) -> bytes:
    out = bytearray(buf)
    reader = _Reader(buf)
    kind = reader.uint(1)
    if kind not in _PARSED_TYPES:
        return bytes(out)
    n_inputs = reader.uint(1) >> 4
    for i in range(n_inputs):
        reader.take(_PREVOUT_LEN)
        if _is_condition_slot(kind, i):
            msg_len = reader.uint(2)
            script_len = reader.uint(2)
            reader.take(msg_len + script_len)
        else:
            start = reader.pos
            reader.take(_SIG_LEN)
            out[start:start + _SIG_LEN] = bytes(_SIG_LEN)
    return bytes(out)


def _recover_signer(sig_hash: bytes, v: int, r: int, s: int) -> str:
    try:
        signature = keys.Signature(vrs=(v - 27 if v >= 27 else v, r, s))
        public_key = signature.recover_public_key_from_msg_hash(sig_hash)
    except (BadSignature, ValidationError, ValueError) as e:
        raise DecodeError(f"cannot recover signer: {e}") from e
    return "0x" + public_key.to_canonical_address().hex()


def recover_signer(tx: Transaction, index: int) -> str:
    """Address that signed input `index` of a transfer or spending-condition tx.

    Raises:
        DecodeError: the input is the condition slot, is unsigned, or its
            signature does not recover.
    """
    if index >= len(tx.inputs) or _is_condition_slot(tx.kind, index):
        raise DecodeError(f"input {index} is not a signed input")
    signature = tx.inputs[index].signature
    if signature is None or not any(signature):
        raise DecodeError(f"input {index} is unsigned")
    v, r, s = signature
    return _recover_signer(signing_hash(encode_transaction(tx)), v, r, s)


def decode_transaction(raw: str | bytes) -> Transaction:
    """Parse a raw Leap transaction.

    Signatures are read but not checked; call recover_signer() for the
    inputs whose signer matters.
    """
    buf = _to_bytes(raw)
    reader = _Reader(buf)
    kind = reader.uint(1)
    if kind not in _PARSED_TYPES:
        return Transaction(kind=kind)

    counts = reader.uint(1)
    n_inputs, n_outputs = counts >> 4, counts & 0x0F

    inputs: list[TxInput] = []
    for i in range(n_inputs):
        prev_hash = reader.take(32)
        prev_index = reader.uint(1)
        if _is_condition_slot(kind, i):
            msg_len = reader.uint(2)
            script_len = reader.uint(2)
            inputs.append(TxInput(
                prev_hash=prev_hash,
                prev_index=prev_index,
                msg_data=reader.take(msg_len),
                script=reader.take(script_len),
            ))
        else:
            r = reader.uint(32)
            s = reader.uint(32)
            v = reader.uint(1)
            inputs.append(TxInput(
                prev_hash=prev_hash,
                prev_index=prev_index,
                signature=(v, r, s),
            ))

    outputs: list[TxOutput] = []
    for _ in range(n_outputs):
        value = reader.uint(32)
        color = reader.uint(2)
        address = "0x" + reader.take(20).hex()
        data = reader.take(32) if color >= NST_COLOR_START else None
        outputs.append(TxOutput(value=value, color=color, address=address, data=data))

    if reader.pos != len(buf):
        raise DecodeError(f"{len(buf) - reader.pos} trailing bytes after outputs")

    return Transaction(kind=kind, inputs=tuple(inputs), outputs=tuple(outputs))


def encode_transaction(tx: Transaction) -> bytes:
    """Serialize a transfer or spending-condition transaction.

    Signed-input slots without a signature are written zeroed, which is
    exactly the form signing_hash() covers.
    """
    if tx.kind not in _PARSED_TYPES:
        raise ValueError(f"cannot encode transaction type {tx.kind}")
    if len(tx.inputs) > 15 or len(tx.outputs) > 15:
        raise ValueError("at most 15 inputs and 15 outputs fit the count byte")

    parts = [bytes([tx.kind, (len(tx.inputs) << 4) | len(tx.outputs)])]
    for i, inp in enumerate(tx.inputs):
        parts.append(inp.prev_hash.rjust(32, b"\x00")[:32])
        parts.append(bytes([inp.prev_index]))
        if _is_condition_slot(tx.kind, i):
            parts.append(len(inp.msg_data).to_bytes(2, "big"))
            parts.append(len(inp.script).to_bytes(2, "big"))
            parts.append(inp.msg_data)
            parts.append(inp.script)
        elif inp.signature is None:
            parts.append(bytes(_SIG_LEN))
        else:
            v, r, s = inp.signature
            parts.append(r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([v]))

    for out in tx.outputs:
        parts.append(out.value.to_bytes(32, "big"))
        parts.append(out.color.to_bytes(2, "big"))
        parts.append(bytes.fromhex(out.address[2:]))
        if out.color >= NST_COLOR_START:
            parts.append((out.data or b"").rjust(32, b"\x00")[:32])
    return b"".join(parts)


def sign_transaction(tx: Transaction, private_keys: dict[int, bytes]) -> Transaction:
    """Sign the given input slots and return the signed transaction.

    private_keys maps input index -> 32-byte secp256k1 private key.
    """
    sig_hash = signing_hash(encode_transaction(tx))
    inputs = list(tx.inputs)
    for index, secret in private_keys.items():
        if _is_condition_slot(tx.kind, index):
            raise ValueError(f"input {index} is a spending condition, not a signed input")
        key = keys.PrivateKey(secret)
        sig = key.sign_msg_hash(sig_hash)
        inputs[index] = inputs[index].model_copy(update={
            "signature": (sig.v + 27, sig.r, sig.s),
            "signer": "0x" + key.public_key.to_canonical_address().hex(),
        })
    return tx.model_copy(update={"inputs": tuple(inputs)})


__all__ = [
    "NST_COLOR_START",
    "TYPE_SPEND_COND",
    "TYPE_TRANSFER",
    "decode_transaction",
    "encode_transaction",
    "recover_signer",
    "sign_transaction",
    "signing_hash",
]
