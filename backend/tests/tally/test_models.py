"""Tests for domain records and fixed-point helpers."""

from tally.fixed_point import safe_amount, to_decimal
from tally.models import Campaign, DistributionMode, ParticipationRecord, Project

WEI = 10**18


class TestFixedPoint:
    def test_safe_amount(self) -> None:
        assert safe_amount(5) == 5
        assert safe_amount("42") == 42
        assert safe_amount("0x10") == 16
        assert safe_amount(-3) == 0
        assert safe_amount(None) == 0
        assert safe_amount("1.5") == 0
        assert safe_amount(float("inf")) == 0
        assert safe_amount(True) == 0

    def test_to_decimal_keeps_precision_on_large_values(self) -> None:
        assert to_decimal(1000 * WEI) == 1000.0
        assert to_decimal(WEI // 2) == 0.5
        assert to_decimal(123_456_789_123 * WEI + WEI // 4) == 123_456_789_123.25

    def test_to_decimal_beyond_float_range_is_zero(self) -> None:
        assert to_decimal(10**400) == 0.0
        assert to_decimal(str(10**400)) == 0.0


class TestParticipationRecord:
    def test_from_tuple(self) -> None:
        record = ParticipationRecord.from_raw("1", "9", [True, str(3 * WEI), 0])

        assert record == ParticipationRecord(
            campaign_id="1", project_id="9", approved=True, vote_count=3 * WEI
        )

    def test_from_dict(self) -> None:
        record = ParticipationRecord.from_raw(
            "1", "9", {"approved": False, "voteCount": 7 * WEI, "fundsReceived": "100"}
        )

        assert record is not None
        assert record.vote_count == 7 * WEI
        assert record.funds_received == 100
        assert record.approved is False

    def test_two_field_tuple_defaults_funds(self) -> None:
        record = ParticipationRecord.from_raw(1, 2, (False, 5))
        assert record is not None
        assert record.funds_received == 0
        assert record.project_id == "2"

    def test_unrecognised_shapes(self) -> None:
        assert ParticipationRecord.from_raw("1", "9", None) is None
        assert ParticipationRecord.from_raw("1", "9", "garbage") is None
        assert ParticipationRecord.from_raw("1", "9", [True]) is None

    def test_negative_votes_become_zero(self) -> None:
        record = ParticipationRecord.from_raw("1", "9", {"voteCount": -50})
        assert record is not None
        assert record.vote_count == 0


class TestCampaign:
    def test_from_api_response(self) -> None:
        campaign = Campaign.from_api_response(
            {
                "id": 3,
                "name": "Round 3",
                "startTime": "1700000000",
                "endTime": 1700086400,
                "totalFunds": str(500 * WEI),
                "adminFeePercentage": 5,
                "maxWinners": 3,
                "distributionMode": "QUADRATIC",
                "active": True,
            }
        )

        assert campaign.id == "3"
        assert campaign.start_time == 1_700_000_000
        assert campaign.total_funds == 500 * WEI
        assert campaign.distribution_mode == DistributionMode.QUADRATIC
        assert campaign.max_winners == 3

    def test_legacy_quadratic_flag(self) -> None:
        campaign = Campaign.from_api_response({"id": "1", "useQuadraticDistribution": True})
        assert campaign.distribution_mode == DistributionMode.QUADRATIC

    def test_defaults_and_clamping(self) -> None:
        campaign = Campaign.from_api_response(
            {"id": "1", "adminFeePercentage": 250, "distributionMode": "weird"}
        )

        assert campaign.admin_fee_percentage == 100
        assert campaign.distribution_mode == DistributionMode.LINEAR
        assert campaign.start_time == 0
        assert campaign.active is False

    def test_non_finite_timestamps_are_unset(self) -> None:
        campaign = Campaign.from_api_response(
            {"id": "1", "startTime": float("inf"), "endTime": float("nan")}
        )

        assert campaign.start_time == 0
        assert campaign.end_time == 0


class TestProject:
    def test_from_api_response(self) -> None:
        project = Project.from_api_response(
            {"id": "0x2", "name": "Tree DAO", "owner": "0xabc", "campaignIds": [1, 4]}
        )

        assert project.id == "0x2"
        assert project.campaign_ids == ("1", "4")
