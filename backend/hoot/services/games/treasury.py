from typing import NamedTuple, Optional

from flask import current_app

from hoot.models import ZERO_ADDRESS
from hoot.services.chain import ChainReadError, PrizeContract

NATIVE_DECIMALS = 18


class FeeSettings(NamedTuple):
    fee_percent: int
    fee_precision: int

    @property
    def effective_rate(self) -> float:
        return self.fee_percent / self.fee_precision


class TreasuryFeeResolver:
    """Token decimals and treasury fee lookups that never fail the payout flow."""

    def __init__(self, chain: PrizeContract, default_decimals: int = NATIVE_DECIMALS,
                 default_fee: FeeSettings = FeeSettings(100000, 1000000)):
        self.chain = chain
        self.default_decimals = default_decimals
        self.default_fee = default_fee

    def resolve_decimals(self, token: Optional[str]) -> int:
        if not token or token.lower() == ZERO_ADDRESS:
            return NATIVE_DECIMALS
        try:
            return self.chain.read_token_decimals(token)
        except ChainReadError as exc:
            current_app.logger.warning(f"[decimals-fallback] token={token} using {self.default_decimals}: {exc}")
            return self.default_decimals

    def resolve_fee(self, contract_address: str, mode: str = 'standard') -> FeeSettings:
        try:
            fee_percent, fee_precision = self.chain.read_fee_settings(contract_address, mode)
        except ChainReadError as exc:
            current_app.logger.warning(
                f"[fee-fallback] contract={contract_address} using "
                f"{self.default_fee.fee_percent}/{self.default_fee.fee_precision}: {exc}"
            )
            return self.default_fee
        if fee_percent < 0 or fee_precision <= 0:
            current_app.logger.warning(
                f"[fee-fallback] contract={contract_address} returned {fee_percent}/{fee_precision}"
            )
            return self.default_fee
        return FeeSettings(fee_percent, fee_precision)
