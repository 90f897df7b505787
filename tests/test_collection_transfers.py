"""
Transfer, Royalty & Metadata Test Suite

Coverage:
  Transfers     : release window, operator allow-list and approvals,
                  batch transfers, recipient validation
  Royalty       : basis-point bounds, receiver validation, royalty_info
  Metadata      : uri() / contract_uri() and base URI updates
  Collection    : events, snapshot / restore, construction from settings
  Reference     : in-memory ledger, allow-list, owner authority, vault
"""

import os
import sys
from decimal import Decimal

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from qmint.collection import (
    AdminAuthority,
    ApprovalForAll,
    Clock,
    FixedClock,
    PaymentSink,
    RoyaltyChanged,
    TokenLedger,
    TransferBatch,
    TransferSingle,
    TypedTokenCollection,
    URIChanged,
)
from qmint.collection import OperatorAllowList as OperatorAllowListProtocol
from qmint.config import CollectionSettings
from qmint.constants import DEFAULT_UNIT_PRICE, RELEASE_TIMESTAMP_CEILING, ZERO_ADDRESS
from qmint.exceptions import (
    ConfigurationError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidRoyaltyError,
    InvalidTimestampError,
    InvalidTypeError,
    OperatorNotAllowedError,
    TransferLockedError,
    TypeCapExceededError,
    UnauthorizedError,
)
from qmint.ledger import MultiTokenLedger, OperatorAllowList, OwnerAuthority, PaymentVault


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
MARKET = "0x" + "4d" * 20
ROGUE = "0x" + "66" * 20
# EIP-55 checksummed account and its lower-case spelling
DAVE = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
DAVE_LOWER = DAVE.lower()

NOW = 1_700_000_000
RELEASE = 1_750_000_000
BASE_URI = "ipfs://bafyqmint/"


def make_collection(now=RELEASE, operators=(MARKET,), **kwargs) -> TypedTokenCollection:
    """Released collection with MARKET allow-listed and ALICE holding stock."""
    kwargs.setdefault("release_timestamp", RELEASE)
    kwargs.setdefault("base_uri", BASE_URI)
    c = TypedTokenCollection(
        OwnerAuthority(ADMIN),
        clock=FixedClock(now),
        allowlist=OperatorAllowList(operators),
        **kwargs,
    )
    c.mint(ADMIN, 0, ALICE, 10)
    c.mint(ADMIN, 3, ALICE, 4)
    return c


# ══════════════════════════════════════════════════════════════════════
#  SINGLE TRANSFERS
# ══════════════════════════════════════════════════════════════════════


class TestReleaseWindow:

    def test_transfer_locked_before_release(self):
        c = make_collection(now=RELEASE - 1)
        with pytest.raises(TransferLockedError):
            c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)
        assert c.balance_of(ALICE, 0) == 10

    def test_transfer_at_release_succeeds(self):
        c = make_collection(now=RELEASE - 1)
        c.clock.advance(1)
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)
        assert c.balance_of(BOB, 0) == 1

    def test_moving_release_earlier_unlocks(self):
        c = make_collection(now=NOW)
        c.set_release_timestamp(ADMIN, NOW)
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 2)
        assert c.balance_of(BOB, 0) == 2

    def test_moving_release_later_relocks(self):
        c = make_collection(now=RELEASE)
        c.set_release_timestamp(ADMIN, RELEASE + 100)
        with pytest.raises(TransferLockedError):
            c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)

    def test_release_beyond_ceiling_unchanged(self):
        c = make_collection()
        with pytest.raises(InvalidTimestampError):
            c.set_release_timestamp(ADMIN, RELEASE_TIMESTAMP_CEILING + 1)
        assert c.release_timestamp == RELEASE


class TestSafeTransferFrom:

    def test_owner_transfer(self):
        c = make_collection()
        event = c.safe_transfer_from(ALICE, ALICE, BOB, 0, 3)
        assert isinstance(event, TransferSingle)
        assert (event.sender, event.recipient, event.value) == (ALICE, BOB, 3)
        assert c.balance_of(ALICE, 0) == 7
        assert c.balance_of(BOB, 0) == 3

    def test_transfers_do_not_touch_supply(self):
        c = make_collection()
        before = c.supply.snapshot()
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 3)
        assert c.supply.snapshot() == before

    def test_insufficient_balance(self):
        c = make_collection()
        with pytest.raises(InsufficientBalanceError):
            c.safe_transfer_from(ALICE, ALICE, BOB, 3, 5)

    def test_zero_recipient_rejected(self):
        c = make_collection()
        with pytest.raises(InvalidAddressError):
            c.safe_transfer_from(ALICE, ALICE, ZERO_ADDRESS, 0, 1)

    def test_invalid_type(self):
        c = make_collection()
        with pytest.raises(InvalidTypeError):
            c.safe_transfer_from(ALICE, ALICE, BOB, 8, 1)

    def test_approved_allow_listed_operator(self):
        c = make_collection()
        c.set_approval_for_all(ALICE, MARKET, True)
        event = c.safe_transfer_from(MARKET, ALICE, BOB, 0, 1)
        assert event.operator == MARKET
        assert c.balance_of(BOB, 0) == 1

    def test_unapproved_operator(self):
        c = make_collection()
        with pytest.raises(UnauthorizedError):
            c.safe_transfer_from(MARKET, ALICE, BOB, 0, 1)

    def test_operator_removed_from_allow_list(self):
        c = make_collection()
        c.set_approval_for_all(ALICE, MARKET, True)
        c.allowlist.deny(MARKET)
        with pytest.raises(OperatorNotAllowedError):
            c.safe_transfer_from(MARKET, ALICE, BOB, 0, 1)

    def test_owner_under_other_casing_is_not_an_operator(self):
        c = make_collection()
        c.mint(ADMIN, 1, DAVE, 3)
        event = c.safe_transfer_from(DAVE_LOWER, DAVE, BOB, 1, 1)
        assert event.operator == event.sender == DAVE_LOWER
        c.safe_transfer_from(DAVE, DAVE_LOWER, BOB, 1, 1)
        assert c.balance_of(DAVE, 1) == 1
        assert c.balance_of(BOB, 1) == 2

    def test_checksummed_recipient_credited_once(self):
        c = make_collection()
        c.safe_transfer_from(ALICE, ALICE, DAVE, 0, 2)
        c.safe_batch_transfer_from(ALICE, ALICE, DAVE_LOWER, [0, 3], [1, 1])
        assert c.balance_of_batch([DAVE, DAVE_LOWER], [0, 3]) == [3, 1]


class TestApprovals:

    def test_grant_requires_allow_list(self):
        c = make_collection()
        with pytest.raises(OperatorNotAllowedError):
            c.set_approval_for_all(ALICE, ROGUE, True)
        assert not c.is_approved_for_all(ALICE, ROGUE)

    def test_revoke_never_requires_allow_list(self):
        c = make_collection()
        event = c.set_approval_for_all(ALICE, ROGUE, False)
        assert isinstance(event, ApprovalForAll)
        assert event.approved is False

    def test_disabled_allow_list_passes_everyone(self):
        c = make_collection()
        c.allowlist.enabled = False
        c.set_approval_for_all(ALICE, ROGUE, True)
        c.safe_transfer_from(ROGUE, ALICE, BOB, 0, 1)
        assert c.balance_of(BOB, 0) == 1

    def test_approvals_not_release_gated(self):
        c = make_collection(now=NOW)
        c.set_approval_for_all(ALICE, MARKET, True)
        assert c.is_approved_for_all(ALICE, MARKET)

    def test_allow_list_case_insensitive(self):
        c = make_collection()
        operator = MARKET.upper().replace("0X", "0x")
        c.set_approval_for_all(ALICE, operator, True)
        assert c.is_approved_for_all(ALICE, operator)
        assert c.is_approved_for_all(ALICE, MARKET)

    def test_approval_granted_by_checksummed_owner(self):
        c = make_collection()
        c.mint(ADMIN, 2, DAVE, 2)
        c.set_approval_for_all(DAVE, MARKET, True)
        assert c.is_approved_for_all(DAVE_LOWER, MARKET)
        c.safe_transfer_from(MARKET, DAVE_LOWER, BOB, 2, 2)
        assert c.balance_of(DAVE, 2) == 0

    def test_self_approval_rejected_across_casing(self):
        c = make_collection()
        with pytest.raises(ValueError):
            c.set_approval_for_all(DAVE, DAVE_LOWER, False)


# ══════════════════════════════════════════════════════════════════════
#  BATCH TRANSFERS
# ══════════════════════════════════════════════════════════════════════


class TestBatchTransfer:

    def test_batch(self):
        c = make_collection()
        event = c.safe_batch_transfer_from(ALICE, ALICE, BOB, [0, 3], [5, 4])
        assert isinstance(event, TransferBatch)
        assert event.to_dict()["ids"] == [0, 3]
        assert c.balance_of_batch([ALICE, BOB, BOB], [0, 0, 3]) == [5, 5, 4]

    def test_repeated_type_aggregated(self):
        c = make_collection()
        with pytest.raises(InsufficientBalanceError):
            c.safe_batch_transfer_from(ALICE, ALICE, BOB, [3, 3], [3, 3])
        assert c.balance_of(ALICE, 3) == 4
        assert c.balance_of(BOB, 3) == 0

    def test_one_bad_leg_moves_nothing(self):
        c = make_collection()
        with pytest.raises(InvalidTypeError):
            c.safe_batch_transfer_from(ALICE, ALICE, BOB, [0, 9], [1, 1])
        assert c.balance_of(ALICE, 0) == 10

    def test_length_mismatch(self):
        c = make_collection()
        with pytest.raises(ValueError):
            c.safe_batch_transfer_from(ALICE, ALICE, BOB, [0, 3], [1])

    def test_empty_batch(self):
        c = make_collection()
        with pytest.raises(ValueError):
            c.safe_batch_transfer_from(ALICE, ALICE, BOB, [], [])

    def test_locked(self):
        c = make_collection(now=NOW)
        with pytest.raises(TransferLockedError):
            c.safe_batch_transfer_from(ALICE, ALICE, BOB, [0], [1])


# ══════════════════════════════════════════════════════════════════════
#  ROYALTY
# ══════════════════════════════════════════════════════════════════════


class TestRoyalty:

    def test_default_receiver_is_owner(self):
        c = make_collection()
        assert c.royalty.receiver == ADMIN
        assert c.royalty.basis_points == 500

    def test_full_rate_rejected_then_500_accepted(self):
        c = make_collection()
        with pytest.raises(InvalidRoyaltyError):
            c.set_royalty(ADMIN, CAROL, 10000)
        assert c.royalty.receiver == ADMIN
        c.set_royalty(ADMIN, CAROL, 500)
        assert c.royalty.basis_points == 500
        assert c.royalty.receiver == CAROL
        assert c.events.of_type(RoyaltyChanged)[-1].receiver == CAROL

    @pytest.mark.parametrize("bps", [0, -1, 10001, 250.0])
    def test_out_of_range(self, bps):
        c = make_collection()
        with pytest.raises(InvalidRoyaltyError):
            c.set_royalty(ADMIN, CAROL, bps)

    @pytest.mark.parametrize("receiver", [ZERO_ADDRESS, "carol", "0x1234"])
    def test_invalid_receiver(self, receiver):
        c = make_collection()
        with pytest.raises(InvalidRoyaltyError):
            c.set_royalty(ADMIN, receiver, 500)

    def test_non_admin(self):
        c = make_collection()
        with pytest.raises(UnauthorizedError):
            c.set_royalty(ROGUE, ROGUE, 9999)

    def test_royalty_info(self):
        c = make_collection()
        c.set_royalty(ADMIN, CAROL, 750)
        assert c.royalty_info(0, Decimal("2.00")) == (CAROL, Decimal("0.15"))
        assert c.royalty_info(0, Decimal("10000")) == (CAROL, Decimal("750"))

    def test_royalty_info_rounds_down(self):
        c = make_collection()
        receiver, amount = c.royalty_info(1, Decimal("0.99"))
        assert receiver == ADMIN
        assert amount == Decimal("0.04")

    def test_royalty_info_validates_type(self):
        c = make_collection()
        with pytest.raises(InvalidTypeError):
            c.royalty_info(8, Decimal("1"))


# ══════════════════════════════════════════════════════════════════════
#  METADATA
# ══════════════════════════════════════════════════════════════════════


class TestMetadata:

    def test_uri(self):
        c = make_collection()
        assert c.uri(3) == BASE_URI + "3.json"
        assert c.contract_uri() == BASE_URI + "contract.json"

    def test_uri_invalid_type(self):
        c = make_collection()
        with pytest.raises(InvalidTypeError):
            c.uri(8)

    def test_set_base_uri(self):
        c = make_collection()
        c.set_base_uri(ADMIN, "https://meta.example/")
        assert c.uri(0) == "https://meta.example/0.json"
        event = c.events.of_type(URIChanged)[-1]
        assert event.to_dict()["event"] == "URI"

    def test_set_base_uri_non_admin(self):
        c = make_collection()
        with pytest.raises(UnauthorizedError):
            c.set_base_uri(ROGUE, "https://evil.example/")
        assert c.metadata.base_uri == BASE_URI

    def test_custom_suffixes(self):
        suffixes = [f"hero-{t}" for t in range(8)]
        c = make_collection(type_suffixes=suffixes, contract_suffix="collection")
        assert c.uri(7) == BASE_URI + "hero-7"
        assert c.contract_uri() == BASE_URI + "collection"

    def test_suffix_count_must_match(self):
        with pytest.raises(ValueError):
            make_collection(type_suffixes=["a.json"])


# ══════════════════════════════════════════════════════════════════════
#  COLLECTION
# ══════════════════════════════════════════════════════════════════════


class TestCollection:

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="name"):
            TypedTokenCollection(OwnerAuthority(ADMIN), name="")

    def test_subscriber_receives_events(self):
        c = make_collection()
        seen = []
        c.events.subscribe(seen.append)
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)
        c.events.unsubscribe(seen.append)
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)
        assert len(seen) == 1

    def test_failing_subscriber_does_not_undo(self):
        c = make_collection()

        def broken(event):
            raise RuntimeError("indexer down")

        c.events.subscribe(broken)
        c.safe_transfer_from(ALICE, ALICE, BOB, 0, 1)
        assert c.balance_of(BOB, 0) == 1

    def test_snapshot_restore_roundtrip(self):
        c = make_collection()
        c.set_public_sale_open(ADMIN, True)
        c.purchase(5, BOB, DEFAULT_UNIT_PRICE)
        c.burn(ALICE, 0, 2)
        c.set_approval_for_all(ALICE, MARKET, True)
        c.set_royalty(ADMIN, CAROL, 300)
        c.pause(ADMIN)

        fresh = TypedTokenCollection(
            OwnerAuthority(ADMIN),
            clock=FixedClock(RELEASE),
            allowlist=OperatorAllowList([MARKET]),
        )
        fresh.restore(c.snapshot())
        assert fresh.snapshot() == c.snapshot()
        assert fresh.is_paused()
        assert fresh.is_approved_for_all(ALICE, MARKET)
        assert fresh.vault.balance == DEFAULT_UNIT_PRICE

    def test_restore_validates_before_changing(self):
        c = make_collection()
        state = c.snapshot()
        state["releaseTimestamp"] = RELEASE_TIMESTAMP_CEILING + 1
        fresh = make_collection()
        before = fresh.snapshot()
        with pytest.raises(InvalidTimestampError):
            fresh.restore(state)
        assert fresh.snapshot() == before

    def test_restore_rejects_counters_over_cap(self):
        c = make_collection()
        state = c.snapshot()
        state["supply"][0] = {"minted": 61, "burned": 0}
        with pytest.raises(TypeCapExceededError):
            make_collection().restore(state)

    def _diverged_state(self):
        c = make_collection()
        c.mint(ADMIN, 5, BOB, 2)
        c.pause(ADMIN)
        return c.snapshot()

    def test_malformed_ledger_leaves_collection_unchanged(self):
        state = self._diverged_state()
        state["ledger"]["balances"].append({"holder": CAROL, "typeId": 1})
        fresh = make_collection()
        before = fresh.snapshot()
        with pytest.raises(ValueError):
            fresh.restore(state)
        assert fresh.snapshot() == before
        assert not fresh.is_paused()

    def test_malformed_vault_leaves_collection_unchanged(self):
        state = self._diverged_state()
        state["vault"]["balance"] = "lots"
        fresh = make_collection()
        before = fresh.snapshot()
        with pytest.raises(ValueError):
            fresh.restore(state)
        assert fresh.snapshot() == before

    def test_rejected_counters_roll_back_ledger(self):
        state = self._diverged_state()
        state["supply"][5] = {"minted": 61, "burned": 0}
        fresh = make_collection()
        before = fresh.snapshot()
        with pytest.raises(TypeCapExceededError):
            fresh.restore(state)
        assert fresh.snapshot() == before
        assert fresh.balance_of(BOB, 5) == 0

    def test_to_dict(self):
        c = make_collection()
        d = c.to_dict()
        assert d["symbol"] == "QCHAR"
        assert d["release"]["state"] == "unlocked"
        assert d["supply"]["totalMinted"] == 14
        assert "QCHAR" in repr(c)

    def test_from_settings(self):
        settings = CollectionSettings.from_dict({
            "collection": {"num_types": 3, "max_total_supply": 9, "max_mint_per_type": 3,
                           "unit_price": "1.5", "release_timestamp": RELEASE},
            "admin": {"owner": ADMIN},
            "royalty": {"receiver": CAROL, "basis_points": 250},
            "operators": {"allowed": [MARKET]},
        })
        c = TypedTokenCollection.from_settings(settings, clock=FixedClock(RELEASE))
        assert c.num_types == 3
        assert c.unit_price == Decimal("1.5")
        assert c.royalty.receiver == CAROL
        assert c.allowlist.is_operator_allowed(MARKET)
        assert c.admin.is_authorized(ADMIN)

    def test_from_settings_validates(self):
        settings = CollectionSettings.from_dict({"admin": {"owner": ""}})
        with pytest.raises(ConfigurationError):
            TypedTokenCollection.from_settings(settings)


# ══════════════════════════════════════════════════════════════════════
#  REFERENCE COLLABORATORS
# ══════════════════════════════════════════════════════════════════════


class TestReferenceCollaborators:

    def test_protocols_satisfied(self):
        assert isinstance(MultiTokenLedger(), TokenLedger)
        assert isinstance(OperatorAllowList(), OperatorAllowListProtocol)
        assert isinstance(OwnerAuthority(ADMIN), AdminAuthority)
        assert isinstance(FixedClock(0), Clock)
        assert isinstance(PaymentVault(), PaymentSink)

    def test_ledger_batch_all_or_nothing(self):
        ledger = MultiTokenLedger()
        ledger.mint(ALICE, 0, 2)
        with pytest.raises(InsufficientBalanceError):
            ledger.batch_transfer(ALICE, BOB, [0, 1], [1, 1])
        assert ledger.balance_of(ALICE, 0) == 2
        assert ledger.holders(0) == {ALICE: 2}

    def test_ledger_self_approval(self):
        with pytest.raises(ValueError):
            MultiTokenLedger().set_approval_for_all(ALICE, ALICE, True)

    def test_ledger_snapshot_restore(self):
        ledger = MultiTokenLedger()
        ledger.mint(ALICE, 1, 5)
        ledger.set_approval_for_all(ALICE, MARKET, True)
        other = MultiTokenLedger()
        other.restore(ledger.snapshot())
        assert other.balance_of(ALICE, 1) == 5
        assert other.is_approved_for_all(ALICE, MARKET)

    def test_owner_transfer_and_renounce(self):
        admin = OwnerAuthority(ADMIN)
        with pytest.raises(UnauthorizedError):
            admin.transfer_ownership(ROGUE, ROGUE)
        admin.transfer_ownership(ADMIN, CAROL)
        assert admin.is_authorized(CAROL)
        assert not admin.is_authorized(ADMIN)
        admin.renounce_ownership(CAROL)
        assert admin.owner is None
        assert not admin.is_authorized(CAROL)

    def test_owner_must_be_valid(self):
        with pytest.raises(InvalidAddressError):
            OwnerAuthority(ZERO_ADDRESS)

    def test_vault_failed_payout_restores_balance(self):
        vault = PaymentVault()
        vault.deposit(ALICE, Decimal("3"))

        def payout(to, amount):
            raise RuntimeError("transfer failed")

        with pytest.raises(RuntimeError):
            vault.withdraw(ADMIN, payout)
        assert vault.balance == Decimal("3")
        assert vault.withdraw(ADMIN) == Decimal("3")
        assert vault.balance == 0
        assert vault.total_received == Decimal("3")

    def test_allow_list(self):
        allowlist = OperatorAllowList()
        assert not allowlist.is_operator_allowed(MARKET)
        allowlist.allow(MARKET.upper().replace("0X", "0x"))
        assert allowlist.is_operator_allowed(MARKET)
        assert allowlist.operators == [MARKET]
        assert len(allowlist) == 1
