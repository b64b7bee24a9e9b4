"""
Test Transaction Builder

Tests for transaction assembly, single-shot sending and status polling
after a failed send.
"""

import sys
from pathlib import Path
from unittest.mock import Mock

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

BLOCKHASH = "11111111111111111111111111111111"


def _builder(compute_units=0, compute_unit_price=0):
    from solders.keypair import Keypair
    from amm_adapter.infra import LocalSigner, TxBuilder, TxBuilderConfig

    rpc = Mock()
    rpc.get_latest_blockhash.return_value = {"blockhash": BLOCKHASH, "lastValidBlockHeight": 1}
    signer = LocalSigner(Keypair.from_seed(bytes([1] * 32)))
    config = TxBuilderConfig(
        compute_units=compute_units,
        compute_unit_price=compute_unit_price,
        skip_preflight=False,
        preflight_commitment="confirmed",
        confirmation_timeout=1.0,
        confirmation_poll_interval=0.01,
    )
    return TxBuilder(rpc, signer, config), rpc, signer


def _instruction(signer, tag=0):
    from solders.instruction import AccountMeta, Instruction
    from solders.pubkey import Pubkey

    program = Pubkey(bytes([42] * 32))
    owner = Pubkey.from_string(signer.pubkey)
    return Instruction(program, bytes([tag]), [AccountMeta(owner, is_signer=True, is_writable=True)])


def _node_rejection():
    from amm_adapter.errors import RpcError, ErrorCode

    error = {
        "code": -32002,
        "message": "Transaction simulation failed: Error processing Instruction 0",
        "data": {"err": {"InstructionError": [0, {"Custom": 6000}]}, "logs": ["Program log: exceeds desired slippage limit"]},
    }
    rpc_error = RpcError(f"RPC error (sendTransaction): {error['message']}", ErrorCode.RPC_INVALID_RESPONSE)
    rpc_error.details["rpc_error_code"] = error["code"]
    rpc_error.details["rpc_error_data"] = error["data"]
    rpc_error.details["rpc_error"] = error
    return rpc_error


def test_build_orders_instructions():
    """Compute budget first, then caller instructions in order; signer pays"""
    from solders.transaction import VersionedTransaction

    print("Testing TxBuilder.build...")

    builder, rpc, signer = _builder(compute_units=300_000, compute_unit_price=1_000)
    unsigned = builder.build([_instruction(signer, 1), _instruction(signer, 2)])

    tx = VersionedTransaction.from_bytes(unsigned)
    message = tx.message
    assert str(message.account_keys[0]) == signer.pubkey
    assert message.header.num_required_signatures == 1
    assert len(message.instructions) == 4
    assert [bytes(ix.data) for ix in message.instructions[2:]] == [bytes([1]), bytes([2])]

    print("  TxBuilder.build: PASSED")


def test_build_without_blockhash():
    """Missing blockhash is a recoverable transaction error"""
    from amm_adapter.errors import TransactionError, ErrorCode

    builder, rpc, signer = _builder()
    rpc.get_latest_blockhash.return_value = {}
    try:
        builder.build([_instruction(signer)])
        assert False, "Should raise without blockhash"
    except TransactionError as e:
        assert e.code == ErrorCode.TX_INVALID_BLOCKHASH
        assert e.recoverable


def test_send_and_confirm():
    """Confirmed transaction reports success with slot"""
    from amm_adapter.types import TxStatus

    builder, rpc, signer = _builder()
    rpc.send_transaction.side_effect = lambda tx, **kwargs: None
    rpc.confirm_transaction.return_value = (True, {"slot": 55, "confirmationStatus": "confirmed"})

    result = builder.build_and_send([_instruction(signer)])

    assert result.status == TxStatus.SUCCESS
    assert result.slot == 55
    assert rpc.send_transaction.call_count == 1
    assert rpc.confirm_transaction.call_args[0][0] == result.signature


def test_send_without_waiting():
    """wait_confirmation=False returns pending with the signature"""
    from amm_adapter.types import TxStatus

    builder, rpc, signer = _builder()
    result = builder.build_and_send([_instruction(signer)], wait_confirmation=False)

    assert result.status == TxStatus.PENDING
    assert result.signature
    rpc.confirm_transaction.assert_not_called()


def test_node_rejection_is_not_retried():
    """A JSON-RPC error from sendTransaction surfaces with logs, no polling"""
    from amm_adapter.errors import TransactionError, ErrorCode

    print("Testing node rejection...")

    builder, rpc, signer = _builder()
    rpc.send_transaction.side_effect = _node_rejection()

    try:
        builder.build_and_send([_instruction(signer)])
        assert False, "Should raise TransactionError"
    except TransactionError as e:
        assert e.code == ErrorCode.TX_SEND_FAILED
        assert not e.recoverable
        assert e.logs == ["Program log: exceeds desired slippage limit"]
        assert e.remote_error["code"] == -32002
        assert e.signature

    assert rpc.send_transaction.call_count == 1
    rpc.confirm_transaction.assert_not_called()

    print("  node rejection: PASSED")


def test_transport_failure_then_landed():
    """A timed-out send whose signature appears is reported as landed"""
    from amm_adapter.errors import RpcError
    from amm_adapter.types import TxStatus

    builder, rpc, signer = _builder()
    rpc.send_transaction.side_effect = RpcError.timeout("https://rpc.example.com", 30.0)
    rpc.confirm_transaction.return_value = (True, {"slot": 77, "confirmationStatus": "confirmed"})

    result = builder.build_and_send([_instruction(signer)])

    assert result.status == TxStatus.SUCCESS
    assert rpc.send_transaction.call_count == 1


def test_transport_failure_never_seen():
    """A failed send that never appears is recoverable, not resubmitted"""
    from amm_adapter.errors import RpcError, TransactionError, ErrorCode

    builder, rpc, signer = _builder()
    rpc.send_transaction.side_effect = RpcError.connection_failed("https://rpc.example.com")
    rpc.confirm_transaction.return_value = (None, None)

    try:
        builder.build_and_send([_instruction(signer)])
        assert False, "Should raise TransactionError"
    except TransactionError as e:
        assert e.code == ErrorCode.TX_SEND_FAILED
        assert e.recoverable
        assert e.signature

    assert rpc.send_transaction.call_count == 1


def test_on_chain_failure():
    """Program error after landing is a failed result with the remote error"""
    from amm_adapter.types import TxStatus

    builder, rpc, signer = _builder()
    err = {"InstructionError": [0, {"Custom": 6001}]}
    rpc.confirm_transaction.return_value = (False, {"slot": 9, "err": err})

    result = builder.build_and_send([_instruction(signer)])

    assert result.status == TxStatus.FAILED
    assert result.remote_error == err
    assert result.slot == 9


def test_simulate_first_failure():
    """Failed simulation stops before sending"""
    from amm_adapter.errors import TransactionError, ErrorCode

    builder, rpc, signer = _builder()
    rpc.simulate_transaction.return_value = {
        "value": {"err": {"InstructionError": [0, "InvalidArgument"]}, "logs": ["log line"]}
    }

    try:
        builder.build_and_send([_instruction(signer)], simulate_first=True)
        assert False, "Should raise simulation failure"
    except TransactionError as e:
        assert e.code == ErrorCode.TX_SIMULATION_FAILED
        assert e.logs == ["log line"]

    rpc.send_transaction.assert_not_called()


def test_sign_rejects_extra_signers():
    """Transactions needing another signer are refused"""
    from solders.instruction import AccountMeta, Instruction
    from solders.pubkey import Pubkey
    from amm_adapter.errors import SignerError

    builder, rpc, signer = _builder()
    other = Pubkey(bytes([9] * 32))
    ix = Instruction(
        Pubkey(bytes([42] * 32)),
        b"",
        [
            AccountMeta(Pubkey.from_string(signer.pubkey), is_signer=True, is_writable=True),
            AccountMeta(other, is_signer=True, is_writable=False),
        ],
    )
    unsigned = builder.build([ix])
    try:
        builder.sign(unsigned)
        assert False, "Should refuse a second required signer"
    except SignerError:
        pass
