"""Operator CLI for multisig owner management and transaction proposals."""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from coordination.service import CoordinationServiceClient
from core.config import (
    AccountRef,
    OperatorSettings,
    load_settings,
    resolve_account,
    safe_app_url,
)
from core.errors import MultisigError, OperationCancelledError, ValidationError
from core.models import Account, TransactionItem
from execution_adapter.ethereum.executor import SafeExecutor
from execution_adapter.ethereum.reader import AccountStateReader, build_web3
from execution_adapter.ethereum.simulator import simulate
from execution_controller.builder import ProposalBuilder
from execution_controller.controller import ExecutionController
from execution_engine.planner import OwnerReconciliationPlanner
from wallet_core.keystore import key_source_from_settings
from wallet_core.signer import ProposerSigner

PASSPHRASE_ENV = "MULTISIG_OPS_KEYSTORE_PASSPHRASE"

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="multisig-ops")
    parser.add_argument("--config", help="JSON config file (default: $MULTISIG_OPS_CONFIG)")
    parser.add_argument("--verbose", "-v", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    state_parser = subparsers.add_parser("state", help="Show owners, threshold and nonce")
    _add_safe_arg(state_parser)
    state_parser.set_defaults(func=_state)

    owners_parser = subparsers.add_parser("owners")
    owners_sub = owners_parser.add_subparsers(dest="owners_command", required=True)

    owners_plan = owners_sub.add_parser("plan", help="Dry-run an owner/threshold change")
    _add_owner_args(owners_plan)
    owners_plan.set_defaults(func=_owners_plan)

    owners_propose = owners_sub.add_parser("propose", help="Propose an owner/threshold change")
    _add_owner_args(owners_propose)
    owners_propose.add_argument("--nonce", type=int)
    owners_propose.add_argument("--dry-run", action="store_true")
    owners_propose.set_defaults(func=_owners_propose)

    propose_parser = subparsers.add_parser("propose", help="Propose a batch of transactions")
    _add_safe_arg(propose_parser)
    source = propose_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--txs", help="JSON array of {to, value, data} objects")
    source.add_argument("--txs-file", help="File with a JSON array, or - for stdin")
    propose_parser.add_argument("--nonce", type=int)
    propose_parser.add_argument("--dry-run", action="store_true")
    propose_parser.set_defaults(func=_propose)

    pending_parser = subparsers.add_parser("pending", help="List pending proposals")
    _add_safe_arg(pending_parser)
    pending_parser.set_defaults(func=_pending)

    check_parser = subparsers.add_parser("check", help="Show confirmations for a proposal")
    _add_safe_arg(check_parser)
    check_parser.add_argument("--tx-hash", required=True)
    check_parser.add_argument("--wait", type=float, default=0.0, metavar="SECONDS")
    check_parser.add_argument("--interval", type=float, default=15.0, metavar="SECONDS")
    check_parser.set_defaults(func=_check)

    execute_parser = subparsers.add_parser("execute", help="Execute a fully confirmed proposal")
    _add_safe_arg(execute_parser)
    execute_parser.add_argument("--tx-hash", required=True)
    execute_parser.add_argument("--yes", action="store_true")
    execute_parser.set_defaults(func=_execute)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        return args.func(args)
    except MultisigError as exc:
        logger.debug("command failed", exc_info=True)
        error = {"success": False, "error": str(exc), "type": type(exc).__name__}
        print(json.dumps(error, indent=2), file=sys.stderr)
        return 2


def _state(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    account = _make_reader(settings).read(ref.address)
    _emit({"success": True, **account.to_dict()})
    return 0


def _owners_plan(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    targets = _parse_owners(args.owners)
    account = _make_reader(settings).read(ref.address)
    plan = OwnerReconciliationPlanner().plan(account, targets, _target_threshold(args, account))
    _emit({"success": True, **_plan_output(plan)})
    return 0


def _owners_propose(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    targets = _parse_owners(args.owners)
    reader = _make_reader(settings)
    account = reader.read(ref.address)
    plan = OwnerReconciliationPlanner().plan(account, targets, _target_threshold(args, account))
    output = _plan_output(plan)
    if plan.is_empty or args.dry_run:
        _emit({"success": True, **output})
        return 0

    service = _make_service(settings)
    controller = ExecutionController(
        reader, service, ProposalBuilder(service, _make_signer(settings), settings), settings
    )
    proposal = controller.propose_plan(plan, nonce=args.nonce)
    output["proposal"] = _proposal_output(proposal)
    _emit({"success": True, **output})
    return 0


def _propose(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    items = _load_items(args.txs, args.txs_file)
    reader = _make_reader(settings)
    service = _make_service(settings)

    if args.dry_run:
        account = reader.read(ref.address)
        proposal = ProposalBuilder(service, None, settings).prepare(account, items, args.nonce)
        _emit({"success": True, "dryRun": True, **proposal.to_dict()})
        return 0

    builder = ProposalBuilder(service, _make_signer(settings), settings)
    proposal = ExecutionController(reader, service, builder, settings).propose(
        ref.address, items, nonce=args.nonce
    )
    _emit({"success": True, **_proposal_output(proposal)})
    return 0


def _pending(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    controller = _read_only_controller(settings)
    pending = controller.pending(ref.address)
    _emit(
        {
            "success": True,
            "safe": ref.address,
            "count": len(pending),
            "transactions": [
                {
                    **item.to_dict(),
                    "safeAppUrl": safe_app_url(
                        settings.chain_id, ref.address, item.proposal_hash
                    ),
                }
                for item in pending
            ],
        }
    )
    return 0


def _check(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    controller = _read_only_controller(settings)
    if args.wait > 0:
        status = controller.wait_until_executable(
            ref.address, args.tx_hash, poll_interval=args.interval, timeout=args.wait
        )
    else:
        status = controller.status(ref.address, args.tx_hash)
    _emit({"success": True, **status.to_dict()})
    return 0


def _execute(args: argparse.Namespace) -> int:
    settings, ref = _resolve(args)
    reader = _make_reader(settings)
    service = _make_service(settings)
    signer = _make_signer(settings)
    controller = ExecutionController(
        reader,
        service,
        ProposalBuilder(service, signer, settings),
        settings,
        executor=_make_executor(settings, signer),
    )

    if not args.yes:
        status = controller.status(ref.address, args.tx_hash)
        prompt = (
            f"Execute {args.tx_hash} on {ref.address} "
            f"({status.confirmations}/{status.threshold} confirmations)? [y/N]: "
        )
        if not _confirm(prompt):
            raise OperationCancelledError("Execution declined by operator.")

    tx_hash = controller.execute(ref.address, args.tx_hash)
    _emit({"success": True, "safeTxHash": args.tx_hash, "txHash": tx_hash})
    return 0


def _add_safe_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--safe", required=True, help="Configured account name or 0x address")


def _add_owner_args(parser: argparse.ArgumentParser) -> None:
    _add_safe_arg(parser)
    parser.add_argument("--owners", required=True, help="Comma-separated target owners")
    parser.add_argument(
        "--threshold", type=int, default=None, help="Target threshold (default: current)"
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve(args: argparse.Namespace) -> Tuple[OperatorSettings, AccountRef]:
    settings = load_settings(args.config)
    return settings, resolve_account(settings, args.safe)


def _make_reader(settings: OperatorSettings) -> AccountStateReader:
    return AccountStateReader(build_web3(settings), settings)


def _make_service(settings: OperatorSettings) -> CoordinationServiceClient:
    return CoordinationServiceClient(settings)


def _make_signer(settings: OperatorSettings) -> ProposerSigner:
    passphrase = None
    if settings.keystore_path:
        passphrase = os.environ.get(PASSPHRASE_ENV)
        if passphrase is None:
            passphrase = getpass.getpass(f"Passphrase for {settings.keystore_path}: ")
    return ProposerSigner(key_source_from_settings(settings, passphrase))


def _make_executor(settings: OperatorSettings, signer: ProposerSigner) -> SafeExecutor:
    return SafeExecutor(build_web3(settings), signer, settings)


def _read_only_controller(settings: OperatorSettings) -> ExecutionController:
    service = _make_service(settings)
    return ExecutionController(
        _make_reader(settings), service, ProposalBuilder(service, None, settings), settings
    )


def _parse_owners(raw: str) -> Tuple[str, ...]:
    owners = tuple(part.strip() for part in raw.split(",") if part.strip())
    if not owners:
        raise ValidationError("At least one owner is required.", offending=raw)
    return owners


def _load_items(txs: Optional[str], txs_file: Optional[str]) -> Tuple[TransactionItem, ...]:
    if txs is not None:
        raw = txs
    elif txs_file == "-":
        raw = sys.stdin.read()
    else:
        path = Path(txs_file)
        if not path.exists():
            raise ValidationError(f"Transactions file not found: {path}", offending=txs_file)
        raw = path.read_text()

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Transactions are not valid JSON: {exc}", offending=raw) from exc
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list) or not payload:
        raise ValidationError("No transactions to propose.", offending=payload)
    return tuple(TransactionItem.from_dict(entry) for entry in payload)


def _target_threshold(args: argparse.Namespace, account: Account) -> int:
    return account.threshold if args.threshold is None else args.threshold


def _proposal_output(proposal) -> dict:
    output = proposal.to_dict()
    output["safeAppUrl"] = safe_app_url(
        proposal.chain_id, proposal.account_address, proposal.proposal_hash
    )
    return output


def _plan_output(plan) -> dict:
    output = plan.to_dict()
    if plan.is_empty:
        output["message"] = "No changes needed"
        return output
    dry_run = simulate(plan, plan.account)
    output["dryRun"] = {
        "steps": [
            {
                "sequence": step.sequence,
                "description": step.description,
                "ownersAfter": list(step.owners_after),
                "thresholdAfter": step.threshold_after,
            }
            for step in dry_run.steps
        ],
        "finalOwners": list(dry_run.final_owners),
        "finalThreshold": dry_run.final_threshold,
        "notes": list(dry_run.notes),
    }
    return output


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def _confirm(prompt: str) -> bool:
    response = input(prompt)
    return response.strip().lower() in {"y", "yes"}


if __name__ == "__main__":
    raise SystemExit(main())
