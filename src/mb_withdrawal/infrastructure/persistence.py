"""WithdrawalRepository: raw SQL over withdrawal_requests, caller-owned transaction.

Status changes are conditional (``WHERE status = :from_status``) so a stale
writer can never move a request out of a state it no longer holds.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.enums import WithdrawalStatus
from src.mb_common.errors import InternalError
from src.mb_withdrawal.domain.models import WithdrawalRequest

_COLUMNS = """id, user_id, credits, destination_address, status,
           gross_lovelace, platform_fee_lovelace, network_fee_lovelace, net_lovelace,
           drawn_winnings, drawn_purchased, ledger_entry_id, payment_tx_hash,
           admin_notes, processed_at, created_at, updated_at"""

_INSERT_SQL = text(f"""
    INSERT INTO withdrawal_requests
        (id, user_id, credits, destination_address, status,
         gross_lovelace, platform_fee_lovelace, network_fee_lovelace, net_lovelace,
         drawn_winnings, drawn_purchased, ledger_entry_id)
    VALUES
        (:id, :user_id, :credits, :destination_address, :status,
         :gross_lovelace, :platform_fee_lovelace, :network_fee_lovelace, :net_lovelace,
         :drawn_winnings, :drawn_purchased, :ledger_entry_id)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM withdrawal_requests WHERE id = :id")

_LOCK_SQL = text(f"SELECT {_COLUMNS} FROM withdrawal_requests WHERE id = :id FOR UPDATE")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE withdrawal_requests
    SET status = :to_status,
        admin_notes = COALESCE(:admin_notes, admin_notes),
        payment_tx_hash = COALESCE(:payment_tx_hash, payment_tx_hash),
        processed_at = CASE WHEN :to_status IN ('completed', 'cancelled')
                            THEN NOW() ELSE processed_at END,
        updated_at = NOW()
    WHERE id = :id AND status = :from_status
    RETURNING {_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM withdrawal_requests
    WHERE user_id = :user_id
    ORDER BY created_at DESC
    LIMIT :limit
""")

_LIST_BY_STATUS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM withdrawal_requests
    WHERE (CAST(:status AS VARCHAR) IS NULL OR status = :status)
    ORDER BY created_at ASC
    LIMIT :limit
""")


def _row_to_request(row: object) -> WithdrawalRequest:
    return WithdrawalRequest(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        credits=row.credits,  # type: ignore[attr-defined]
        destination_address=row.destination_address,  # type: ignore[attr-defined]
        status=WithdrawalStatus(row.status),  # type: ignore[attr-defined]
        gross_lovelace=row.gross_lovelace,  # type: ignore[attr-defined]
        platform_fee_lovelace=row.platform_fee_lovelace,  # type: ignore[attr-defined]
        network_fee_lovelace=row.network_fee_lovelace,  # type: ignore[attr-defined]
        net_lovelace=row.net_lovelace,  # type: ignore[attr-defined]
        drawn_winnings=row.drawn_winnings,  # type: ignore[attr-defined]
        drawn_purchased=row.drawn_purchased,  # type: ignore[attr-defined]
        ledger_entry_id=row.ledger_entry_id,  # type: ignore[attr-defined]
        payment_tx_hash=row.payment_tx_hash,  # type: ignore[attr-defined]
        admin_notes=row.admin_notes,  # type: ignore[attr-defined]
        processed_at=row.processed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class WithdrawalRepository:
    async def create(self, db: AsyncSession, request: WithdrawalRequest) -> WithdrawalRequest:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": request.id,
                "user_id": request.user_id,
                "credits": request.credits,
                "destination_address": request.destination_address,
                "status": request.status.value,
                "gross_lovelace": request.gross_lovelace,
                "platform_fee_lovelace": request.platform_fee_lovelace,
                "network_fee_lovelace": request.network_fee_lovelace,
                "net_lovelace": request.net_lovelace,
                "drawn_winnings": request.drawn_winnings,
                "drawn_purchased": request.drawn_purchased,
                "ledger_entry_id": request.ledger_entry_id,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Withdrawal insert returned no rows")
        return _row_to_request(row)

    async def get(self, db: AsyncSession, request_id: str) -> WithdrawalRequest | None:
        result = await db.execute(_GET_SQL, {"id": request_id})
        row = result.fetchone()
        return _row_to_request(row) if row else None

    async def lock(self, db: AsyncSession, request_id: str) -> WithdrawalRequest | None:
        result = await db.execute(_LOCK_SQL, {"id": request_id})
        row = result.fetchone()
        return _row_to_request(row) if row else None

    async def update_status(
        self,
        db: AsyncSession,
        request_id: str,
        from_status: WithdrawalStatus,
        to_status: WithdrawalStatus,
        admin_notes: str | None,
        payment_tx_hash: str | None,
    ) -> WithdrawalRequest | None:
        result = await db.execute(
            _UPDATE_STATUS_SQL,
            {
                "id": request_id,
                "from_status": from_status.value,
                "to_status": to_status.value,
                "admin_notes": admin_notes,
                "payment_tx_hash": payment_tx_hash,
            },
        )
        row = result.fetchone()
        return _row_to_request(row) if row else None

    async def list_by_user(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[WithdrawalRequest]:
        result = await db.execute(_LIST_BY_USER_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_request(row) for row in result.fetchall()]

    async def list_by_status(
        self, db: AsyncSession, status: WithdrawalStatus | None, limit: int
    ) -> list[WithdrawalRequest]:
        result = await db.execute(
            _LIST_BY_STATUS_SQL,
            {"status": status.value if status else None, "limit": limit},
        )
        return [_row_to_request(row) for row in result.fetchall()]
