from hoot.models import ZERO_ADDRESS
from hoot.services.games.treasury import FeeSettings, TreasuryFeeResolver

from conftest import CONTRACT, TOKEN


def test_native_token_needs_no_chain_read(flask_app, chain):
    resolver = TreasuryFeeResolver(chain, default_decimals=6)
    assert resolver.resolve_decimals(None) == 18
    assert resolver.resolve_decimals(ZERO_ADDRESS) == 18
    assert chain.decimals_reads == []


def test_token_decimals_read_from_chain(flask_app, chain):
    chain.decimals = 6
    assert TreasuryFeeResolver(chain).resolve_decimals(TOKEN) == 6


def test_decimals_fall_back_when_read_fails(flask_app, chain):
    chain.read_error = True
    assert TreasuryFeeResolver(chain, default_decimals=8).resolve_decimals(TOKEN) == 8


def test_fee_read_from_chain(flask_app, chain):
    chain.fee = (50000, 1000000)
    assert TreasuryFeeResolver(chain).resolve_fee(CONTRACT) == FeeSettings(50000, 1000000)


def test_fee_falls_back_when_read_fails(flask_app, chain):
    chain.read_error = True
    fee = TreasuryFeeResolver(chain).resolve_fee(CONTRACT, 'bonus')
    assert fee == FeeSettings(100000, 1000000)
    assert fee.effective_rate == 0.1


def test_fee_falls_back_on_zero_precision(flask_app, chain):
    chain.fee = (100, 0)
    default = FeeSettings(25000, 1000000)
    assert TreasuryFeeResolver(chain, default_fee=default).resolve_fee(CONTRACT) == default
