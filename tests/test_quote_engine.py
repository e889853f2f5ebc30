"""Tests for quote negotiation: creation, approval, decline and counter-offers."""

from datetime import date

import pytest

from conftest import make_quote, make_service, run
from fixhub.database import SessionLocal
from fixhub.domain.payments.service import PaymentGate
from fixhub.domain.quotes.schemas import QuoteTerms
from fixhub.domain.quotes.service import QuoteNegotiationEngine
from fixhub.errors import (
    Conflict,
    InvalidInput,
    InvalidTransition,
    NotAuthorized,
    PaymentGatewayError,
    SelfApprovalForbidden,
)
from fixhub.models import ApprovalState, Notification, Payment, Quote, Service, ServiceStatus, User


class TestCreateQuote:
    def test_created_quote_is_listed_pending(self, db, owner, contractor, service, gateway) -> None:
        engine = QuoteNegotiationEngine(db, gateway)
        quote = run(
            engine.create_quote(
                contractor, service.id, QuoteTerms(description="New trap", estimatedCost=100)
            )
        )

        listed = engine.list_service_quotes(owner, service.id)
        assert [q.id for q in listed] == [quote.id]
        assert listed[0].approval_state == ApprovalState.PENDING
        # The owner is told about the contractor's quote
        assert db.query(Notification).filter(Notification.to_user_id == owner.id).count() == 1

    def test_cost_must_be_positive(self, db, contractor, service, gateway) -> None:
        engine = QuoteNegotiationEngine(db, gateway)
        with pytest.raises(InvalidInput):
            run(engine.create_quote(contractor, service.id, QuoteTerms(description="x", estimatedCost=0)))

    @pytest.mark.parametrize("cost", [float("inf"), float("-inf"), float("nan")])
    def test_cost_must_be_finite(self, db, contractor, service, gateway, cost) -> None:
        engine = QuoteNegotiationEngine(db, gateway)
        with pytest.raises(InvalidInput):
            run(engine.create_quote(contractor, service.id, QuoteTerms(description="x", estimatedCost=cost)))
        assert db.query(Quote).count() == 0

    def test_partial_window_rejected(self, db, contractor, service, gateway) -> None:
        terms = QuoteTerms(
            description="Tomorrow morning",
            estimatedCost=90,
            availableFromDate=date(2026, 11, 3),
            availableFromTime="09:00",
        )
        with pytest.raises(InvalidInput):
            run(QuoteNegotiationEngine(db, gateway).create_quote(contractor, service.id, terms))

    def test_cannot_quote_on_cancelled_service(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, status=ServiceStatus.CANCELLED)
        terms = QuoteTerms(description="Too late", estimatedCost=40)
        with pytest.raises(InvalidTransition):
            run(QuoteNegotiationEngine(db, gateway).create_quote(contractor, service.id, terms))

    def test_tenant_stranger_cannot_quote(self, db, tenant, service, gateway) -> None:
        terms = QuoteTerms(description="Let me", estimatedCost=40)
        with pytest.raises(NotAuthorized):
            run(QuoteNegotiationEngine(db, gateway).create_quote(tenant, service.id, terms))


class TestApprovalScenarios:
    def test_unpaid_approval_returns_checkout(self, db, owner, contractor, service, gateway) -> None:
        quote = make_quote(db, contractor, service, estimated_cost=100.0)

        outcome = run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))

        assert outcome.payment_required
        assert outcome.checkout.checkout_url == "https://checkout.test/1"
        db.refresh(service)
        db.refresh(quote)
        assert service.paid is False
        assert service.status == ServiceStatus.PENDING
        assert quote.approval_state == ApprovalState.PENDING

        payment = db.query(Payment).one()
        assert payment.resume_approval is True
        assert payment.resume_quote_id == quote.id
        assert payment.user_id == owner.id

    def test_payment_confirmation_resumes_approval(self, db, owner, contractor, service, gateway) -> None:
        quote = make_quote(db, contractor, service, estimated_cost=100.0)
        outcome = run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))

        result = run(PaymentGate(db, gateway).confirm_payment(outcome.checkout.external_id))

        assert result.already_settled is False
        assert result.resumed_quote.id == quote.id
        db.refresh(service)
        assert service.paid is True
        assert service.status == ServiceStatus.ONGOING
        assert service.amount == 100.0
        assert service.contractor_id == contractor.id

    def test_checkout_charges_posted_amount(self, db, owner, contractor, service, gateway) -> None:
        assert service.amount == 50.0
        quote = make_quote(db, contractor, service, estimated_cost=100.0)
        outcome = run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))

        assert gateway.created[0]["amount"] == 50.0
        assert db.query(Payment).one().amount == 50.0

        run(PaymentGate(db, gateway).confirm_payment(outcome.checkout.external_id))
        db.refresh(service)
        assert service.amount == 100.0

    def test_resume_approves_parked_quote_not_newest(
        self, db, owner, contractor, other_contractor, service, gateway
    ) -> None:
        parked = make_quote(db, contractor, service, estimated_cost=100.0)
        outcome = run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, parked.id))
        newer = make_quote(db, other_contractor, service, estimated_cost=80.0)

        result = run(PaymentGate(db, gateway).confirm_payment(outcome.checkout.external_id))

        assert result.resumed_quote.id == parked.id
        db.refresh(parked)
        db.refresh(newer)
        db.refresh(service)
        assert parked.approval_state == ApprovalState.APPROVED
        assert newer.approval_state == ApprovalState.DECLINED
        assert service.amount == 100.0
        assert service.contractor_id == contractor.id

    def test_unassigned_contractor_cannot_approve(
        self, db, owner, contractor, other_contractor, service, gateway
    ) -> None:
        quote = make_quote(db, contractor, service)
        with pytest.raises(NotAuthorized):
            run(QuoteNegotiationEngine(db, gateway).approve_quote(other_contractor, quote.id))

    def test_concurrent_approvals_one_wins(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True)
        quote = make_quote(db, contractor, service)

        session_a = SessionLocal()
        session_b = SessionLocal()
        try:
            # Both requests have read the pending quote before either writes
            owner_b = session_b.get(User, owner.id)
            stale = session_b.get(Quote, quote.id)
            assert stale.service.paid is True
            assert stale.author.id == contractor.id

            owner_a = session_a.get(User, owner.id)
            won = run(QuoteNegotiationEngine(session_a, gateway).approve_quote(owner_a, quote.id))
            assert won.quote.approval_state == ApprovalState.APPROVED

            with pytest.raises(Conflict):
                run(QuoteNegotiationEngine(session_b, gateway).approve_quote(owner_b, quote.id))
        finally:
            session_a.close()
            session_b.close()

        db.expire_all()
        assert db.get(Quote, quote.id).approval_state == ApprovalState.APPROVED
        assert db.get(Service, service.id).status == ServiceStatus.ONGOING


class TestApprovalRules:
    def test_self_approval_forbidden(self, db, owner, service, gateway) -> None:
        quote = make_quote(db, owner, service)
        with pytest.raises(SelfApprovalForbidden):
            run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))
        assert gateway.created == []

    def test_never_ongoing_while_unpaid(self, db, owner, contractor, service, gateway) -> None:
        quote = make_quote(db, contractor, service)
        engine = QuoteNegotiationEngine(db, gateway)
        first = run(engine.approve_quote(owner, quote.id))
        second = run(engine.approve_quote(owner, quote.id))

        assert first.payment_required and second.payment_required
        # The unsettled payment is reused, not duplicated
        assert first.checkout.payment_id == second.checkout.payment_id
        assert db.query(Payment).count() == 1
        db.refresh(service)
        assert service.status == ServiceStatus.PENDING

    def test_gateway_failure_changes_nothing(self, db, owner, contractor, service, failing_gateway) -> None:
        quote = make_quote(db, contractor, service)
        with pytest.raises(PaymentGatewayError) as exc:
            run(QuoteNegotiationEngine(db, failing_gateway).approve_quote(owner, quote.id))
        assert exc.value.retryable is True
        assert db.query(Payment).count() == 0
        db.refresh(quote)
        assert quote.approval_state == ApprovalState.PENDING

    def test_approval_declines_siblings(
        self, db, owner, contractor, other_contractor, gateway
    ) -> None:
        service = make_service(db, owner, paid=True)
        chosen = make_quote(db, contractor, service, estimated_cost=120.0)
        sibling = make_quote(db, other_contractor, service, estimated_cost=90.0)

        run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, chosen.id))

        db.refresh(chosen)
        db.refresh(sibling)
        assert chosen.approval_state == ApprovalState.APPROVED
        assert chosen.decided_by_id == owner.id
        assert sibling.approval_state == ApprovalState.DECLINED

    def test_approved_quote_cannot_be_approved_again(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True)
        quote = make_quote(db, contractor, service)
        engine = QuoteNegotiationEngine(db, gateway)
        run(engine.approve_quote(owner, quote.id))
        with pytest.raises(Conflict):
            run(engine.approve_quote(owner, quote.id))

    def test_approval_binds_schedule(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True)
        quote = make_quote(
            db,
            contractor,
            service,
            available_from_date=date(2026, 12, 1),
            available_to_date=date(2026, 12, 2),
            available_from_time="13:00",
            available_to_time="15:30",
        )
        run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))
        db.refresh(service)
        assert service.available_from_date == date(2026, 12, 1)
        assert service.available_from_time == "13:00"
        assert service.available_to_time == "15:30"

    def test_assigned_contractor_confirms_owner_quote(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True, contractor_id=contractor.id)
        quote = make_quote(db, owner, service, estimated_cost=75.0)
        outcome = run(QuoteNegotiationEngine(db, gateway).contractor_approve_quote(contractor, quote.id))
        assert outcome.service.status == ServiceStatus.ONGOING
        assert outcome.service.amount == 75.0

    def test_cancelled_service_blocks_approval(self, db, owner, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True, status=ServiceStatus.CANCELLED)
        quote = make_quote(db, contractor, service)
        with pytest.raises(InvalidTransition):
            run(QuoteNegotiationEngine(db, gateway).approve_quote(owner, quote.id))


class TestDecline:
    def test_owner_declines(self, db, owner, contractor, service, gateway) -> None:
        quote = make_quote(db, contractor, service)
        engine = QuoteNegotiationEngine(db, gateway)
        declined = run(engine.decline_quote(owner, quote.id))
        assert declined.approval_state == ApprovalState.DECLINED

        with pytest.raises(InvalidTransition):
            run(engine.approve_quote(owner, quote.id))
        with pytest.raises(InvalidTransition):
            run(engine.decline_quote(owner, quote.id))

    def test_decline_own_quote_forbidden(self, db, owner, service, gateway) -> None:
        quote = make_quote(db, owner, service)
        with pytest.raises(SelfApprovalForbidden):
            run(QuoteNegotiationEngine(db, gateway).decline_quote(owner, quote.id))

    def test_decline_conflicts_with_bound_contractor(
        self, db, owner, contractor, other_contractor, gateway
    ) -> None:
        service = make_service(db, owner, contractor_id=contractor.id)
        quote = make_quote(db, other_contractor, service)
        with pytest.raises(Conflict):
            run(QuoteNegotiationEngine(db, gateway).decline_quote(owner, quote.id))


class TestCounterOffer:
    def test_counter_inherits_missing_terms(self, db, admin, contractor, service, gateway) -> None:
        original = make_quote(db, contractor, service, description="Full repipe", estimated_cost=300.0)

        counter = run(
            QuoteNegotiationEngine(db, gateway).counter_offer(
                admin, original.id, QuoteTerms(estimatedCost=250)
            )
        )

        assert counter.id != original.id
        assert counter.author_id == admin.id
        assert counter.description == "Full repipe"
        assert counter.estimated_cost == 250.0
        assert counter.approval_state == ApprovalState.PENDING
        db.refresh(original)
        assert original.approval_state == ApprovalState.PENDING

    def test_owner_approves_counter_offer(self, db, owner, admin, contractor, gateway) -> None:
        service = make_service(db, owner, paid=True)
        original = make_quote(db, contractor, service, estimated_cost=300.0)
        engine = QuoteNegotiationEngine(db, gateway)
        counter = run(engine.counter_offer(admin, original.id, QuoteTerms(estimatedCost=250)))

        outcome = run(engine.approve_quote(owner, counter.id))

        assert outcome.service.amount == 250.0
        db.refresh(original)
        assert original.approval_state == ApprovalState.DECLINED

    def test_counter_cost_must_be_finite(self, db, admin, contractor, service, gateway) -> None:
        original = make_quote(db, contractor, service)
        with pytest.raises(InvalidInput):
            run(
                QuoteNegotiationEngine(db, gateway).counter_offer(
                    admin, original.id, QuoteTerms(estimatedCost=float("nan"))
                )
            )
        assert db.query(Quote).count() == 1

    def test_only_admin_counters(self, db, owner, contractor, service, gateway) -> None:
        original = make_quote(db, contractor, service)
        with pytest.raises(NotAuthorized):
            run(
                QuoteNegotiationEngine(db, gateway).counter_offer(
                    owner, original.id, QuoteTerms(estimatedCost=10)
                )
            )
