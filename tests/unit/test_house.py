"""
Tests for the Auction House registry.
"""

import pytest

from bondauction.core.auction import AuctionHouse, AuctionState, BondAuction
from bondauction.core.config import AuctionConfig
from bondauction.core.errors import ConfigurationError
from bondauction.core.tokens import BondToken, PaymentToken

E18 = 10**18
ISSUER_KEY = b"\x30" * 294


@pytest.fixture
def operator(make_account):
    return make_account()


@pytest.fixture
def house(operator, clock):
    bond = BondToken(operator, "Treasury Bond", "TB", cap=10**30)
    config = AuctionConfig(commit_duration=100, reveal_duration=50, claim_duration=200)
    return AuctionHouse(bond, PaymentToken(), config=config, clock=clock)


def create(house, operator, **kwargs):
    return house.initialize(operator, 1000 * E18, 85 * E18, 100 * E18, ISSUER_KEY, **kwargs)


class TestAuctionHouse:

    def test_initialize(self, house, operator, clock):
        auction_id = create(house, operator)
        auction = house.get(auction_id)

        assert isinstance(auction, BondAuction)
        assert auction_id in house
        assert len(house) == 1
        assert auction.state == AuctionState.COMMIT
        assert auction.commit_deadline == clock.now() + 100
        assert auction.claim_deadline == clock.now() + 350
        assert auction.bond_token is house.bond_token

    def test_duration_overrides(self, house, operator, clock):
        auction = house.get(create(house, operator, commit_duration=10, reveal_duration=5))
        assert auction.commit_deadline == clock.now() + 10
        assert auction.reveal_deadline == clock.now() + 15
        assert auction.claim_deadline == clock.now() + 215

    @pytest.mark.parametrize("name", ["commit_duration", "reveal_duration", "claim_duration"])
    def test_zero_duration_rejected(self, house, operator, name):
        with pytest.raises(ConfigurationError, match=name):
            create(house, operator, **{name: 0})
        assert len(house) == 0

    def test_invalid_parameters(self, house, operator):
        with pytest.raises(ConfigurationError, match="Invalid price range"):
            house.initialize(operator, 1000, 100, 85, ISSUER_KEY)
        assert len(house) == 0

    def test_unknown_id(self, house):
        with pytest.raises(KeyError):
            house.get(b"\x00" * 32)

    def test_active_auctions(self, house, operator, clock):
        first = house.get(create(house, operator))
        clock.advance(400)
        second = house.get(create(house, operator))

        assert house.active_auctions() == [second]
        assert not first.phase.accepting_claims(clock.now())
