"""Pydantic schemas for the purchase endpoints.

Field names follow the storefront client (camelCase on the wire).
"""

from pydantic import BaseModel, ConfigDict, Field

from src.mb_purchase.domain.models import CreditTransaction, PurchaseCommand, PurchaseOutcome


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="txHash", min_length=1, max_length=128)
    credits: int = Field(..., gt=0)
    wallet_address: str = Field(..., alias="walletAddress", min_length=1, max_length=200)
    expected_amount: int | None = Field(None, alias="expectedAmount", gt=0)
    expected_address: str | None = Field(None, alias="expectedAddress", max_length=200)

    def to_command(self) -> PurchaseCommand:
        return PurchaseCommand(
            tx_hash=self.tx_hash,
            credits=self.credits,
            wallet_address=self.wallet_address,
            expected_amount=self.expected_amount,
            expected_address=self.expected_address,
        )


class PurchaseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    tx_hash: str = Field(..., alias="txHash")
    new_balance: int | None = Field(None, alias="newBalance")
    old_balance: int | None = Field(None, alias="oldBalance")
    credits_added: int = Field(0, alias="creditsAdded")
    bonus: int = 0
    transaction_id: str | None = Field(None, alias="transactionId")
    retry_after: int | None = Field(None, alias="retryAfter")
    details: dict | None = None

    @classmethod
    def from_outcome(
        cls, outcome: PurchaseOutcome, retry_after: int | None = None
    ) -> "PurchaseResponse":
        return cls(
            status=outcome.status.value,
            tx_hash=outcome.tx_hash,
            new_balance=outcome.new_balance,
            old_balance=outcome.old_balance,
            credits_added=outcome.credits_added,
            bonus=outcome.bonus,
            transaction_id=outcome.transaction_id,
            retry_after=retry_after,
            details=outcome.prior,
        )


class PurchaseItem(BaseModel):
    transaction_id: str | None
    tx_hash: str
    credits: int
    bonus_credits: int
    amount_lovelace: int
    balance_after: int
    created_at: str

    @classmethod
    def from_tx(cls, tx: CreditTransaction) -> "PurchaseItem":
        return cls(
            transaction_id=tx.id,
            tx_hash=tx.tx_hash,
            credits=tx.credits,
            bonus_credits=tx.bonus_credits,
            amount_lovelace=tx.amount_lovelace,
            balance_after=tx.balance_after,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )
