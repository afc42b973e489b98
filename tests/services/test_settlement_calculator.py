"""Settlement Calculator Tests - 정산 엔진 테스트.

- 하위 유저 탐색 (손자 이하 포함, 순환 참조)
- 베팅/손실/출금 집계 (레코드별 손실 0 하한, 상태 필터)
- 파트너별 수수료 / 하위 파트너 일괄 계산
- 통합 정산 (내 수입 - 직속 하위 지급 = 순수익)
- 실패 시 0 대체 및 failures 기록
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from affiliate_admin.models.transaction import TransactionStatus, TransactionType
from affiliate_admin.services.settlement_calculator import (
    ActivityTotals,
    SettlementCalculator,
    SettlementMethod,
    SettlementSummary,
    apply_rates,
)
from affiliate_admin.services.settlement_source import CommissionRates
from affiliate_admin.utils.errors import FailureKind

from tests.fakes import IN_WINDOW, WINDOW_END, WINDOW_START


class TestApplyRates:
    """수수료율 적용 단위 테스트."""

    def test_rates_are_percentages(self):
        """수수료율은 퍼센트 단위 (1 = 1%)."""
        income = apply_rates(
            ActivityTotals(
                total_bet_amount=Decimal("10000"),
                total_loss_amount=Decimal("7000"),
                total_withdrawal_amount=Decimal("20000"),
            ),
            CommissionRates(
                rolling=Decimal("1"),
                losing=Decimal("5"),
                withdrawal=Decimal("2"),
            ),
        )

        assert income.rolling == Decimal("100")
        assert income.losing == Decimal("350")
        assert income.withdrawal == Decimal("400")
        assert income.total == Decimal("850")

    def test_zero_rates(self):
        income = apply_rates(
            ActivityTotals(total_bet_amount=Decimal("5000")),
            CommissionRates(),
        )
        assert income.total == Decimal("0")


class TestDescendantUsers:
    """하위 유저 탐색 테스트."""

    @pytest.mark.asyncio
    async def test_includes_whole_subtree(self, source, calculator):
        """직속 유저 + 하위 파트너의 유저 + 손자 파트너의 유저."""
        source.add_partner("p", level=2)
        source.add_partner("c", parent_id="p", level=3)
        source.add_partner("g", parent_id="c", level=4)
        source.add_user("p", "u1")
        source.add_user("c", "u2")
        source.add_user("g", "u3")

        outcome = await calculator.get_descendant_user_ids("p")

        assert outcome.ok
        assert sorted(outcome.value) == ["u1", "u2", "u3"]

    @pytest.mark.asyncio
    async def test_partner_without_users_or_children(self, source, calculator):
        source.add_partner("p")

        outcome = await calculator.get_descendant_user_ids("p")

        assert outcome.ok
        assert outcome.value == []

    @pytest.mark.asyncio
    async def test_unknown_partner_yields_empty(self, calculator):
        outcome = await calculator.get_descendant_user_ids("missing")

        assert outcome.ok
        assert outcome.value == []

    @pytest.mark.asyncio
    async def test_cycle_terminates(self, source, calculator):
        """부모 관계가 순환해도 각 파트너는 한 번만 방문."""
        source.add_partner("a", parent_id="b")
        source.add_partner("b", parent_id="a")
        source.add_user("a", "u1")
        source.add_user("b", "u2")

        outcome = await calculator.get_descendant_user_ids("a")

        assert outcome.ok
        assert sorted(outcome.value) == ["u1", "u2"]
        assert source.calls.count("fetch_direct_user_ids") == 2

    @pytest.mark.asyncio
    async def test_failure_degrades_to_empty(self, source, calculator):
        source.add_partner("p")
        source.add_user("p", "u1")
        source.fail("fetch_child_partners")

        outcome = await calculator.get_descendant_user_ids("p")

        assert outcome.value == []
        assert outcome.degraded
        failure = outcome.failures[0]
        assert failure.kind == FailureKind.DATA_ACCESS
        assert failure.stage == "descendants"
        assert failure.partner_id == "p"


class TestBettingStats:
    """베팅 통계 집계 테스트."""

    @pytest.mark.asyncio
    async def test_loss_is_clipped_per_record(self, source, calculator):
        """유저가 이긴 레코드는 손실 0으로 계산 (다른 레코드 손실을 상쇄하지 않음)."""
        source.add_game("u1", bet="1000", win="0")
        source.add_game("u1", bet="1000", win="3000")

        outcome = await calculator.get_betting_stats(["u1"], WINDOW_START, WINDOW_END)

        assert outcome.ok
        assert outcome.value.total_bet_amount == Decimal("2000")
        assert outcome.value.total_loss_amount == Decimal("1000")

    @pytest.mark.asyncio
    async def test_records_outside_window_excluded(self, source, calculator):
        source.add_game("u1", bet="1000", win="0")
        source.add_game(
            "u1", bet="5000", win="0", at=datetime(2024, 4, 30, tzinfo=timezone.utc)
        )

        outcome = await calculator.get_betting_stats(["u1"], WINDOW_START, WINDOW_END)

        assert outcome.value.total_bet_amount == Decimal("1000")

    @pytest.mark.asyncio
    async def test_window_bounds_are_inclusive(self, source, calculator):
        source.add_game("u1", bet="100", win="0", at=WINDOW_START)
        source.add_game("u1", bet="200", win="0", at=WINDOW_END)

        outcome = await calculator.get_betting_stats(["u1"], WINDOW_START, WINDOW_END)

        assert outcome.value.total_bet_amount == Decimal("300")

    @pytest.mark.asyncio
    async def test_empty_user_set_skips_query(self, source, calculator):
        outcome = await calculator.get_betting_stats([], WINDOW_START, WINDOW_END)

        assert outcome.ok
        assert outcome.value.total_bet_amount == Decimal("0")
        assert "fetch_game_records" not in source.calls

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "start,end",
        [
            (WINDOW_START, WINDOW_START),
            (WINDOW_END, WINDOW_START),
        ],
    )
    async def test_empty_window_yields_zero(self, source, calculator, start, end):
        """start >= end 이면 조회 없이 0."""
        source.add_game("u1", bet="1000", win="0", at=WINDOW_START)

        outcome = await calculator.get_betting_stats(["u1"], start, end)

        assert outcome.ok
        assert outcome.value.total_bet_amount == Decimal("0")
        assert outcome.value.total_loss_amount == Decimal("0")
        assert "fetch_game_records" not in source.calls

    @pytest.mark.asyncio
    async def test_failure_degrades_to_zero(self, source, calculator):
        source.add_game("u1", bet="1000", win="0")
        source.fail("fetch_game_records")

        outcome = await calculator.get_betting_stats(["u1"], WINDOW_START, WINDOW_END)

        assert outcome.value.total_bet_amount == Decimal("0")
        assert outcome.degraded
        assert outcome.failures[0].stage == "betting_stats"


class TestTransactionSums:
    """출금 / 만충금 집계 테스트."""

    @pytest.fixture
    def populated(self, source):
        w, d = TransactionType.WITHDRAWAL, TransactionType.DEPOSIT
        source.add_transaction("u1", w, TransactionStatus.APPROVED, "10000")
        source.add_transaction("u1", w, TransactionStatus.COMPLETED, "5000")
        source.add_transaction("u1", w, TransactionStatus.PENDING, "7000")
        source.add_transaction("u1", w, TransactionStatus.REJECTED, "3000")
        source.add_transaction("u1", d, TransactionStatus.APPROVED, "50000")
        source.add_transaction("u1", d, TransactionStatus.PENDING, "20000")
        source.add_transaction("u2", d, TransactionStatus.PENDING, "1000")
        return source

    @pytest.mark.asyncio
    async def test_withdrawals_count_approved_and_completed(self, populated, calculator):
        """대기/거절 출금은 제외."""
        outcome = await calculator.get_withdrawal_amount(
            ["u1"], WINDOW_START, WINDOW_END
        )

        assert outcome.ok
        assert outcome.value == Decimal("15000")

    @pytest.mark.asyncio
    async def test_pending_deposits(self, populated, calculator):
        """만충금: 승인 대기 입금만 합산."""
        outcome = await calculator.calculate_pending_deposits(
            ["u1", "u2"], WINDOW_START, WINDOW_END
        )

        assert outcome.ok
        assert outcome.value == Decimal("21000")

    @pytest.mark.asyncio
    async def test_withdrawal_failure(self, populated, calculator):
        populated.fail("fetch_transaction_amounts")

        outcome = await calculator.get_withdrawal_amount(
            ["u1"], WINDOW_START, WINDOW_END
        )

        assert outcome.value == Decimal("0")
        assert outcome.failures[0].stage == "withdrawals"


class TestPartnerCommission:
    """파트너별 수수료 계산 테스트."""

    @pytest.mark.asyncio
    async def test_rolling_and_losing_commission(self, source, calculator):
        """베팅 10000 / 당첨 3000, 롤링 1% / 루징 5% → 100 + 350 = 450."""
        partner = source.add_partner("p", rolling="1", losing="5")
        source.add_user("p", "u1")
        source.add_game("u1", bet="10000", win="3000")

        outcome = await calculator.calculate_partner_commission(
            partner, WINDOW_START, WINDOW_END
        )

        commission = outcome.value
        assert outcome.ok
        assert commission.total_bet_amount == Decimal("10000")
        assert commission.total_loss_amount == Decimal("7000")
        assert commission.rolling_commission == Decimal("100")
        assert commission.losing_commission == Decimal("350")
        assert commission.withdrawal_commission == Decimal("0")
        assert commission.total_commission == Decimal("450")

    @pytest.mark.asyncio
    async def test_withdrawal_commission(self, source, calculator):
        partner = source.add_partner("p", withdrawal="2")
        source.add_user("p", "u1")
        source.add_transaction(
            "u1", TransactionType.WITHDRAWAL, TransactionStatus.APPROVED, "20000"
        )
        source.add_transaction(
            "u1", TransactionType.WITHDRAWAL, TransactionStatus.PENDING, "90000"
        )

        outcome = await calculator.calculate_partner_commission(
            partner, WINDOW_START, WINDOW_END
        )

        assert outcome.value.total_withdrawal_amount == Decimal("20000")
        assert outcome.value.withdrawal_commission == Decimal("400")

    @pytest.mark.asyncio
    async def test_total_is_sum_of_categories(self, source, calculator):
        partner = source.add_partner("p", rolling="0.7", losing="3.3", withdrawal="1.1")
        source.add_user("p", "u1")
        source.add_game("u1", bet="12345.67", win="2345.01")
        source.add_transaction(
            "u1", TransactionType.WITHDRAWAL, TransactionStatus.COMPLETED, "999.99"
        )

        commission = (
            await calculator.calculate_partner_commission(partner, WINDOW_START, WINDOW_END)
        ).value

        assert commission.total_commission == (
            commission.rolling_commission
            + commission.losing_commission
            + commission.withdrawal_commission
        )

    @pytest.mark.asyncio
    async def test_partner_without_users(self, source, calculator):
        partner = source.add_partner("p", rolling="1")

        outcome = await calculator.calculate_partner_commission(
            partner, WINDOW_START, WINDOW_END
        )

        assert outcome.ok
        assert outcome.value.total_commission == Decimal("0")
        assert outcome.value.commission_rolling == Decimal("1")
        assert "fetch_game_records" not in source.calls

    @pytest.mark.asyncio
    async def test_differential_uses_direct_users_only(self, source, calculator):
        """차등 정산: 해당 파트너가 직접 추천한 유저만 기준."""
        partner = source.add_partner("c", rolling="1")
        source.add_partner("g", parent_id="c", level=3)
        source.add_user("c", "u1")
        source.add_user("g", "u2")
        source.add_game("u1", bet="10000", win="10000")
        source.add_game("u2", bet="50000", win="50000")

        direct = await calculator.calculate_partner_commission(
            partner, WINDOW_START, WINDOW_END, SettlementMethod.DIFFERENTIAL
        )
        full = await calculator.calculate_partner_commission(
            partner, WINDOW_START, WINDOW_END, SettlementMethod.DIRECT_SUBORDINATE
        )

        assert direct.value.total_bet_amount == Decimal("10000")
        assert full.value.total_bet_amount == Decimal("60000")


class TestChildPartnersCommission:
    """하위 파트너 일괄 수수료 테스트."""

    @pytest.fixture
    def tree(self, source):
        source.add_partner("p", level=2)
        source.add_partner("c1", parent_id="p", level=3, rolling="1", nickname="bravo")
        source.add_partner("c2", parent_id="p", level=3, rolling="2", nickname="alpha")
        source.add_partner("c3", parent_id="p", level=4, rolling="3", nickname="aaa")
        source.add_user("c1", "u1")
        source.add_user("c2", "u2")
        source.add_user("c3", "u3")
        source.add_game("u1", bet="1000", win="0")
        source.add_game("u2", bet="2000", win="0")
        source.add_game("u3", bet="3000", win="0")
        return source

    @pytest.mark.asyncio
    async def test_ordered_by_level_then_nickname(self, tree, calculator):
        outcome = await calculator.calculate_child_partners_commission(
            "p", WINDOW_START, WINDOW_END
        )

        assert outcome.ok
        assert [c.partner_id for c in outcome.value] == ["c2", "c1", "c3"]

    @pytest.mark.asyncio
    async def test_one_partner_failure_only_zeroes_that_partner(self, tree, calculator):
        tree.fail("fetch_direct_user_ids", "c1")

        outcome = await calculator.calculate_child_partners_commission(
            "p", WINDOW_START, WINDOW_END
        )

        by_id = {c.partner_id: c for c in outcome.value}
        assert len(outcome.value) == 3
        assert by_id["c1"].total_commission == Decimal("0")
        assert by_id["c2"].rolling_commission == Decimal("40")
        assert by_id["c3"].rolling_commission == Decimal("90")
        assert outcome.degraded
        assert [f.partner_id for f in outcome.failures] == ["c1"]

    @pytest.mark.asyncio
    async def test_child_lookup_failure(self, tree, calculator):
        tree.fail("fetch_child_partners", "p")

        outcome = await calculator.calculate_child_partners_commission(
            "p", WINDOW_START, WINDOW_END
        )

        assert outcome.value == []
        assert outcome.failures[0].stage == "child_partners"

    @pytest.mark.asyncio
    async def test_summarize_commissions(self, tree, calculator):
        outcome = await calculator.calculate_child_partners_commission(
            "p", WINDOW_START, WINDOW_END
        )

        totals = SettlementCalculator.summarize_commissions(outcome.value)

        assert totals.partner_count == 3
        assert totals.total_rolling_commission == Decimal("140")
        assert totals.total_commission == Decimal("140")

    def test_summarize_empty(self):
        totals = SettlementCalculator.summarize_commissions([])

        assert totals.partner_count == 0
        assert totals.total_commission == Decimal("0")


class TestIntegratedSettlement:
    """통합 정산 테스트."""

    @pytest.fixture
    def tree(self, source):
        """p (2% / 10%) → c (1% / 5%).

        u0 (p 직속): 베팅 5000, 당첨 5000
        u1 (c 직속): 베팅 10000, 당첨 3000
        """
        source.add_partner("p", level=2, rolling="2", losing="10")
        source.add_partner("c", parent_id="p", level=3, rolling="1", losing="5")
        source.add_user("p", "u0")
        source.add_user("c", "u1")
        source.add_game("u0", bet="5000", win="5000")
        source.add_game("u1", bet="10000", win="3000")
        return source

    @pytest.mark.asyncio
    async def test_net_profit(self, tree, calculator):
        p = tree.partners["p"]

        outcome = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_START, WINDOW_END
        )

        summary = outcome.value
        assert outcome.ok
        assert summary.my_rolling_income == Decimal("300")
        assert summary.my_losing_income == Decimal("700")
        assert summary.my_total_income == Decimal("1000")
        assert summary.partner_rolling_payments == Decimal("100")
        assert summary.partner_losing_payments == Decimal("350")
        assert summary.partner_total_payments == Decimal("450")
        assert summary.net_rolling_profit == Decimal("200")
        assert summary.net_losing_profit == Decimal("350")
        assert summary.net_total_profit == Decimal("550")

    @pytest.mark.asyncio
    async def test_net_equals_income_minus_payments(self, tree, calculator):
        p = tree.partners["p"]
        tree.add_transaction(
            "u1", TransactionType.WITHDRAWAL, TransactionStatus.APPROVED, "3333.33"
        )

        summary = (
            await calculator.calculate_integrated_settlement(
                p.id, CommissionRates(Decimal("2"), Decimal("10"), Decimal("1.5")),
                WINDOW_START, WINDOW_END,
            )
        ).value

        assert summary.net_total_profit == (
            summary.my_total_income - summary.partner_total_payments
        )
        assert summary.net_withdrawal_profit == (
            summary.my_withdrawal_income - summary.partner_withdrawal_payments
        )

    @pytest.mark.asyncio
    async def test_grandchild_paid_by_its_own_parent(self, tree, calculator):
        """손자 파트너 지급은 c의 몫이며 p의 지급 내역에 나타나지 않음."""
        tree.add_partner("g", parent_id="c", level=4, rolling="0.5")
        tree.add_user("g", "u2")
        tree.add_game("u2", bet="1000", win="1000")

        payments = await calculator.calculate_partner_payments(
            "p", WINDOW_START, WINDOW_END
        )

        assert [d.partner_id for d in payments.value.details] == ["c"]
        assert payments.value.details[0].rolling_payment == Decimal("110")

    @pytest.mark.asyncio
    async def test_no_children(self, source, calculator):
        p = source.add_partner("p", rolling="1", losing="5")
        source.add_user("p", "u1")
        source.add_game("u1", bet="10000", win="3000")

        summary = (
            await calculator.calculate_integrated_settlement(
                p.id, p.rates, WINDOW_START, WINDOW_END
            )
        ).value

        assert summary.partner_total_payments == Decimal("0")
        assert summary.net_total_profit == summary.my_total_income == Decimal("450")

    @pytest.mark.asyncio
    async def test_any_failure_zeroes_whole_summary(self, tree, calculator):
        """부분 실패 시 전체를 0으로 (부분 값 노출 금지)."""
        p = tree.partners["p"]
        tree.fail("fetch_transaction_amounts")

        outcome = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_START, WINDOW_END
        )

        assert outcome.degraded
        assert outcome.value == SettlementSummary()
        assert outcome.value.net_total_profit == Decimal("0")

    @pytest.mark.asyncio
    async def test_child_payment_failure_zeroes_whole_summary(self, tree, calculator):
        p = tree.partners["p"]
        tree.fail("fetch_game_records", "u1")

        outcome = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_START, WINDOW_END
        )

        assert outcome.degraded
        assert outcome.value.my_total_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_idempotent(self, tree, calculator):
        p = tree.partners["p"]

        first = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_START, WINDOW_END
        )
        second = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_START, WINDOW_END
        )

        assert first.value == second.value

    @pytest.mark.asyncio
    async def test_empty_window(self, tree, calculator):
        p = tree.partners["p"]

        outcome = await calculator.calculate_integrated_settlement(
            p.id, p.rates, WINDOW_END, WINDOW_START
        )

        assert outcome.ok
        assert outcome.value == SettlementSummary()


class TestMonthlyCommission:
    """이번 달 커미션 테스트."""

    @pytest.mark.asyncio
    async def test_current_month_only(self, source, calculator):
        p = source.add_partner("p", rolling="1")
        source.add_user("p", "u1")
        source.add_game("u1", bet="10000", win="0", at=IN_WINDOW)
        source.add_game(
            "u1", bet="5000", win="0", at=datetime(2024, 5, 31, 23, 59, tzinfo=timezone.utc)
        )
        source.add_game(
            "u1", bet="90000", win="0", at=datetime(2024, 4, 30, 23, 59, tzinfo=timezone.utc)
        )
        source.add_game(
            "u1", bet="70000", win="0", at=datetime(2024, 6, 1, tzinfo=timezone.utc)
        )

        outcome = await calculator.calculate_monthly_commission(
            p.id, p.rates, now=datetime(2024, 5, 20, tzinfo=timezone.utc)
        )

        assert outcome.ok
        assert outcome.value == Decimal("150")

    @pytest.mark.asyncio
    async def test_failure_degrades_to_zero(self, source, calculator):
        p = source.add_partner("p", rolling="1")
        source.add_user("p", "u1")
        source.add_game("u1", bet="10000", win="0")
        source.fail("fetch_direct_user_ids")

        outcome = await calculator.calculate_monthly_commission(
            p.id, p.rates, now=IN_WINDOW
        )

        assert outcome.value == Decimal("0")
        assert outcome.degraded
