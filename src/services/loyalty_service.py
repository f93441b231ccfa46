"""Loyalty points ledger service."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import ConcurrentUpdateError
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.models.loyalty import LedgerEntryKind
from src.services.loyalty_rules import (
    apply_accrual,
    apply_redemption,
    check_redemption_request,
    points_for_units,
)

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class LoyaltyService:
    """Service for loyalty balances and their audit log.

    Balances live in ``loyalty_accounts`` and are only changed with a
    compare-and-swap on the previously read balance. Every change is
    recorded in ``loyalty_ledger``. Changes tied to an order are first
    claimed in ``loyalty_grants`` (unique per order and kind), so a retried
    checkout cannot accrue or redeem twice.
    """

    def __init__(self) -> None:
        """Initialize loyalty service with Supabase client."""
        self.client = get_supabase_client()
        self.settings = get_settings()

    async def get_balance(self, email: str) -> int:
        """Get a customer's points balance.

        Args:
            email: Customer email.

        Returns:
            int: Current balance, 0 if the customer never earned points.
        """
        account = await self._get_account(_normalize(email))
        return int(account["balance"]) if account else 0

    async def accrue(self, email: str, units: int, order_id: str | None = None) -> int:
        """Add points for ``units`` ordered.

        Args:
            email: Customer email.
            units: Product units in the order.
            order_id: Order granting the points. Repeated calls for the same
                order leave the balance unchanged.

        Returns:
            int: Balance after the accrual.

        Raises:
            ValidationError: If units is negative.
            ConcurrentUpdateError: If concurrent writers kept winning.
        """
        email = _normalize(email)
        points = points_for_units(units)

        if order_id and not await self._claim(email, order_id, LedgerEntryKind.ACCRUE, points):
            logger.info("Points for order %s already granted to %s", order_id, email)
            return await self.get_balance(email)

        return await self._change(email, LedgerEntryKind.ACCRUE, points, order_id)

    async def redeem(
        self,
        email: str,
        points: int,
        order_subtotal: Decimal | None = None,
        order_id: str | None = None,
    ) -> int:
        """Spend points as a discount.

        Args:
            email: Customer email.
            points: Points to spend.
            order_subtotal: Amount being discounted; points may not exceed it.
            order_id: Order the discount applies to. Repeated calls for the
                same order leave the balance unchanged.

        Returns:
            int: Balance after the redemption.

        Raises:
            ValidationError: If points is negative or exceeds the subtotal.
            InsufficientPointsError: If points exceeds the balance.
            ConcurrentUpdateError: If concurrent writers kept winning.
        """
        email = _normalize(email)
        check_redemption_request(points, order_subtotal)

        if points == 0:
            return await self.get_balance(email)

        if order_id and not await self._claim(email, order_id, LedgerEntryKind.REDEEM, points):
            logger.info("Points for order %s already redeemed by %s", order_id, email)
            return await self.get_balance(email)

        return await self._change(email, LedgerEntryKind.REDEEM, points, order_id, order_subtotal)

    async def get_history(self, email: str, limit: int = 50) -> list[dict[str, Any]]:
        """Get ledger entries for a customer, newest first."""
        response = (
            self.client.table("loyalty_ledger")
            .select("*")
            .eq("email", _normalize(email))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def get_order_entries(self, email: str, order_id: str) -> dict[str, dict[str, Any]]:
        """Ledger entries recorded for one order, keyed by kind."""
        response = (
            self.client.table("loyalty_ledger")
            .select("*")
            .eq("email", _normalize(email))
            .eq("order_id", order_id)
            .execute()
        )
        return {entry["kind"]: entry for entry in response.data or []}

    async def get_summary(self, email: str) -> dict[str, Any]:
        """Get balance with lifetime earned and redeemed totals.

        Returns:
            dict: email, balance, total_earned, total_redeemed.
        """
        email = _normalize(email)
        response = (
            self.client.table("loyalty_ledger")
            .select("kind, points")
            .eq("email", email)
            .execute()
        )
        entries = response.data or []

        total_earned = sum(e["points"] for e in entries if e["kind"] == LedgerEntryKind.ACCRUE.value)
        total_redeemed = sum(e["points"] for e in entries if e["kind"] == LedgerEntryKind.REDEEM.value)

        return {
            "email": email,
            "balance": await self.get_balance(email),
            "total_earned": total_earned,
            "total_redeemed": total_redeemed,
        }

    async def _change(
        self,
        email: str,
        kind: LedgerEntryKind,
        points: int,
        order_id: str | None,
        order_subtotal: Decimal | None = None,
    ) -> int:
        """Swap the balance and record the ledger entry.

        Any failure before the swap lands releases the order's claim so a
        retry can apply the change. Once the balance has moved the claim is
        kept, even if writing the ledger entry fails.
        """
        try:
            before, after = await self._swap(email, kind, points, order_subtotal)
        except Exception:
            if order_id:
                await self._release_claim(order_id, kind)
            raise

        await self._record(email, kind, points, before, after, order_id)
        logger.info(
            "Loyalty %s of %d points for %s: %d -> %d",
            kind.value,
            points,
            email,
            before,
            after,
        )
        return after

    async def _swap(
        self,
        email: str,
        kind: LedgerEntryKind,
        points: int,
        order_subtotal: Decimal | None,
    ) -> tuple[int, int]:
        """Compare-and-swap the balance, retrying on concurrent writers.

        Returns:
            tuple[int, int]: Balance before and after the change.
        """
        for attempt in range(1, self.settings.loyalty_cas_retries + 1):
            account = await self._get_account(email)
            before = int(account["balance"]) if account else 0

            if kind == LedgerEntryKind.ACCRUE:
                after = apply_accrual(before, points)
            else:
                after = apply_redemption(before, points, order_subtotal)

            if account is None:
                swapped = await self._create_account(email, after)
            else:
                swapped = await self._swap_balance(email, before, after)

            if swapped:
                return before, after

            logger.warning(
                "Loyalty balance for %s changed concurrently (attempt %d)",
                email,
                attempt,
            )

        raise ConcurrentUpdateError(f"Loyalty balance for {email} is being updated concurrently, please retry")

    async def _get_account(self, email: str) -> dict[str, Any] | None:
        response = (
            self.client.table("loyalty_accounts")
            .select("*")
            .eq("email", email)
            .execute()
        )
        return response.data[0] if response.data else None

    async def _create_account(self, email: str, balance: int) -> bool:
        """Create the account row; False if another writer created it first."""
        try:
            self.client.table("loyalty_accounts").insert(
                {"email": email, "balance": balance, "updated_at": _now()}
            ).execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                return False
            raise
        return True

    async def _swap_balance(self, email: str, expected: int, new_balance: int) -> bool:
        response = (
            self.client.table("loyalty_accounts")
            .update({"balance": new_balance, "updated_at": _now()})
            .eq("email", email)
            .eq("balance", expected)
            .execute()
        )
        return bool(response.data)

    async def _record(
        self,
        email: str,
        kind: LedgerEntryKind,
        points: int,
        before: int,
        after: int,
        order_id: str | None,
    ) -> None:
        self.client.table("loyalty_ledger").insert(
            {
                "email": email,
                "kind": kind.value,
                "points": points,
                "balance_before": before,
                "balance_after": after,
                "order_id": order_id,
                "created_at": _now(),
            }
        ).execute()

    async def _claim(self, email: str, order_id: str, kind: LedgerEntryKind, points: int) -> bool:
        """Reserve the (order, kind) pair; False if it was already claimed."""
        try:
            self.client.table("loyalty_grants").insert(
                {
                    "order_id": order_id,
                    "kind": kind.value,
                    "email": email,
                    "points": points,
                    "created_at": _now(),
                }
            ).execute()
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                return False
            raise
        return True

    async def _release_claim(self, order_id: str, kind: LedgerEntryKind) -> None:
        try:
            (
                self.client.table("loyalty_grants")
                .delete()
                .eq("order_id", order_id)
                .eq("kind", kind.value)
                .execute()
            )
        except Exception as e:
            logger.error("Failed to release loyalty claim for order %s: %s", order_id, str(e))


def _normalize(email: str) -> str:
    return email.strip().lower()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
