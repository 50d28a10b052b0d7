import pytest

from bondauction.core.auction import BondAuction, create_commitment
from bondauction.core.clock import ManualClock
from bondauction.core.events import AuctionFinalized, BidCommitted, BidRevealed
from bondauction.core.storage.storage_manager import StorageManager
from bondauction.core.tokens import MINTER_ROLE, BondToken, PaymentToken
from bondauction.crypto import generate_keypair

E18 = 10**18


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary directory for auction data."""
    data_dir = tmp_path / "auction_data"
    data_dir.mkdir()
    return data_dir


def test_audit_trail_survives_restart(temp_data_dir):
    """Events and snapshots written by one process are readable by the next."""
    storage_a = StorageManager(data_dir=temp_data_dir)
    operator = generate_keypair().address
    bidder = generate_keypair().address
    clock = ManualClock(start=1_700_000_000)

    bond = BondToken(operator, "Treasury Bond", "TB", cap=10**6 * E18)
    usdc = PaymentToken()
    auction = BondAuction(
        operator, bond, usdc,
        bond_supply=1000 * E18, min_price=85 * E18, max_price=100 * E18,
        commit_duration=60, reveal_duration=60, claim_duration=60,
        issuer_public_key=b"\x30" * 294, clock=clock, storage_manager=storage_a,
    )
    bond.grant_role(operator, MINTER_ROLE, auction.escrow)
    auction_id = auction.auction_id

    assert storage_a.load_auction(auction_id)["state"] == "COMMIT"

    commitment = create_commitment(bidder, 90 * E18, 10 * E18, 42)
    auction.commit_bid(bidder, commitment, b"ciphertext")
    clock.set_time(auction.commit_deadline)
    auction.reveal_bid(bidder, 90 * E18, 10 * E18, 42)
    assert storage_a.load_auction(auction_id)["state"] == "REVEAL"
    auction.finalize(operator)

    # Drop everything and reopen the same database
    storage_a.close()
    del auction
    del storage_a

    storage_b = StorageManager(data_dir=temp_data_dir)
    assert auction_id in storage_b.auction_ids()

    snapshot = storage_b.load_auction(auction_id)
    assert snapshot["state"] == "FINALIZED"
    assert snapshot["clearing_price"] == 90 * E18
    assert snapshot["total_allocated"] == 10 * E18
    assert snapshot["bond_supply"] == 1000 * E18
    assert snapshot["operator"] == "0x" + operator.hex()

    events = storage_b.load_events(auction_id)
    assert [type(e) for e in events] == [BidCommitted, BidRevealed, AuctionFinalized]
    assert events[0].bidder == bidder
    assert events[0].commitment == commitment
    assert events[0].encrypted_bid == b"ciphertext"
    assert events[1].price == 90 * E18
    assert events[2].clearing_price == 90 * E18
    storage_b.close()


def test_auctions_are_kept_apart(temp_data_dir):
    storage = StorageManager(data_dir=temp_data_dir)
    operator = generate_keypair().address
    clock = ManualClock(start=1_700_000_000)
    bond = BondToken(operator, "Treasury Bond", "TB", cap=10**6 * E18)

    ids = []
    for _ in range(2):
        auction = BondAuction(
            operator, bond, PaymentToken(),
            bond_supply=1000 * E18, min_price=85 * E18, max_price=100 * E18,
            commit_duration=60, reveal_duration=60, claim_duration=60,
            issuer_public_key=b"\x30" * 294, clock=clock, storage_manager=storage,
        )
        bidder = generate_keypair().address
        auction.commit_bid(bidder, create_commitment(bidder, 90 * E18, 1, 1), b"ct")
        ids.append(auction.auction_id)

    assert sorted(storage.auction_ids()) == sorted(ids)
    for auction_id in ids:
        assert storage.event_count(auction_id) == 1
    storage.close()
