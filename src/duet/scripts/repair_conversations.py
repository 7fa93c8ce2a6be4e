# src/duet/scripts/repair_conversations.py
"""Bring stored conversations back in line with the configured policy.

Run once after importing legacy data, after switching
``CONVERSATION_POLICY``, or periodically to repair conversation pointers left
stale by failed updates:

1. Delete broken conversations (missing or identical participants) and
   their messages.
2. Re-sort participant pairs stored out of canonical order.
3. Under the singleton policy, merge duplicate conversations for a pair into
   the newest one and backfill ``pair_key``; under the multiple policy clear it.
4. Recompute ``last_message_id``/``updated_at`` from the message ledger.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from duet.core.settings import ConversationPolicy, settings
from duet.db.time import as_utc
from duet.models import Conversation, Message
from duet.services.message_ledger import MessageLedger

logger = logging.getLogger(__name__)


@dataclass
class RepairReport:
    """Counters describing what a repair pass changed."""

    broken_deleted: int = 0
    messages_deleted: int = 0
    reordered: int = 0
    duplicates_merged: int = 0
    messages_moved: int = 0
    pair_keys_updated: int = 0
    pointers_repaired: int = 0

    def summary_lines(self) -> list[str]:
        return [
            f"  - Deleted {self.broken_deleted} broken conversations ({self.messages_deleted} messages)",
            f"  - Re-sorted {self.reordered} participant pairs",
            f"  - Merged {self.duplicates_merged} duplicate conversations ({self.messages_moved} messages moved)",
            f"  - Updated {self.pair_keys_updated} pair keys",
            f"  - Repaired {self.pointers_repaired} last-message pointers",
        ]


def delete_broken_conversations(db: Session, report: RepairReport) -> None:
    """Remove conversations whose participants are missing or identical."""
    broken_ids = db.execute(
        select(Conversation.id).where(
            or_(
                Conversation.user_low.is_(None),
                Conversation.user_high.is_(None),
                Conversation.user_low == "",
                Conversation.user_high == "",
                Conversation.user_low == Conversation.user_high,
            )
        )
    ).scalars().all()
    if not broken_ids:
        return

    result = db.execute(delete(Message).where(Message.conversation_id.in_(broken_ids)))
    report.messages_deleted += int(result.rowcount or 0)
    db.execute(delete(Conversation).where(Conversation.id.in_(broken_ids)))
    report.broken_deleted += len(broken_ids)


def reorder_participants(db: Session, report: RepairReport) -> None:
    """Swap ``user_low``/``user_high`` wherever they are out of order."""
    rows = db.execute(
        select(Conversation).where(Conversation.user_low > Conversation.user_high)
    ).scalars().all()
    for conversation in rows:
        conversation.user_low, conversation.user_high = (
            conversation.user_high,
            conversation.user_low,
        )
        report.reordered += 1
    db.flush()


def merge_duplicates(db: Session, report: RepairReport) -> None:
    """Keep the newest conversation per pair and fold the others into it."""
    groups: dict[tuple[str, str], list[Conversation]] = defaultdict(list)
    for conversation in db.execute(select(Conversation)).scalars():
        groups[conversation.participants].append(conversation)

    for conversations in groups.values():
        if len(conversations) < 2:
            continue
        conversations.sort(key=lambda c: (as_utc(c.created_at), c.id), reverse=True)
        keeper, *duplicates = conversations
        duplicate_ids = [c.id for c in duplicates]
        moved = db.execute(
            update(Message)
            .where(Message.conversation_id.in_(duplicate_ids))
            .values(conversation_id=keeper.id)
            .execution_options(synchronize_session=False)
        )
        report.messages_moved += int(moved.rowcount or 0)
        for duplicate in duplicates:
            db.delete(duplicate)
        report.duplicates_merged += len(duplicates)
    db.flush()


def sync_pair_keys(db: Session, policy: ConversationPolicy, report: RepairReport) -> None:
    """Backfill or clear ``pair_key`` to match the uniqueness policy."""
    for conversation in db.execute(select(Conversation)).scalars():
        expected = (
            f"{conversation.user_low}:{conversation.user_high}" if policy == "singleton" else None
        )
        if conversation.pair_key != expected:
            conversation.pair_key = expected
            report.pair_keys_updated += 1
    db.flush()


def repair_pointers(db: Session, report: RepairReport) -> None:
    """Recompute each conversation's pointer from its newest message."""
    ledger = MessageLedger(db)
    for conversation in db.execute(select(Conversation)).scalars().all():
        latest = ledger.latest_for_conversation(conversation.id)
        expected_id = latest.id if latest is not None else None
        if conversation.last_message_id == expected_id:
            continue
        conversation.last_message_id = expected_id
        if latest is not None:
            conversation.updated_at = latest.created_at
        report.pointers_repaired += 1
    db.flush()


def repair_conversations(
    db: Session,
    policy: ConversationPolicy,
    *,
    dry_run: bool = False,
) -> RepairReport:
    """Run every repair step in one transaction and return the report."""
    report = RepairReport()
    try:
        delete_broken_conversations(db, report)
        reorder_participants(db, report)
        if policy == "singleton":
            merge_duplicates(db, report)
        sync_pair_keys(db, policy, report)
        repair_pointers(db, report)
    except Exception:
        db.rollback()
        logger.error("Conversation repair failed; no changes applied", exc_info=True)
        raise

    if dry_run:
        db.rollback()
    else:
        db.commit()
    logger.info("Conversation repair finished (dry_run=%s): %s", dry_run, report)
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Repair stored conversations")
    parser.add_argument(
        "--policy",
        choices=["singleton", "multiple"],
        default=settings.conversation_policy,
        help="Uniqueness policy to enforce (defaults to CONVERSATION_POLICY)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without committing.",
    )
    args = parser.parse_args(argv)

    from duet.db.session import SessionLocal

    db = SessionLocal()
    try:
        report = repair_conversations(db, args.policy, dry_run=args.dry_run)
    except Exception as exc:
        print(f"[repair] ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print("[repair] Dry run complete" if args.dry_run else "[repair] Repair complete")
    for line in report.summary_lines():
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
