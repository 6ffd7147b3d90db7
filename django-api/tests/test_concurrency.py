"""Concurrent check-in tests.

Threads share one in-process store; the ORM store's swap is covered by the
stale-read tests in test_checkin.py.
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from tickets.domain import CheckInOutcome, EventId, LiveUpdateType, TicketCode, TicketState
from tickets.services.checkin_service import utcnow
from tickets.stores import InMemoryTicketStore
from tickets.wiring import build_services


@pytest.fixture
def shared_services():
    return build_services({"STORE_BACKEND": "memory"}, store=InMemoryTicketStore(), clock=utcnow)


def scan_concurrently(services, codes, event_id="E1"):
    barrier = Barrier(len(codes))

    def scan(code):
        barrier.wait(timeout=5)
        return services.checkin.validate(code, event_id)

    with ThreadPoolExecutor(max_workers=len(codes)) as pool:
        return list(pool.map(scan, codes))


def scan_pairs_concurrently(services, scans):
    """Run (code, event_id) scans at once; results come back in input order."""
    barrier = Barrier(len(scans))

    def scan(pair):
        barrier.wait(timeout=5)
        return services.checkin.validate(*pair)

    with ThreadPoolExecutor(max_workers=len(scans)) as pool:
        return list(pool.map(scan, scans))


class TestConcurrentCheckIn:
    @pytest.mark.parametrize("callers", [2, 8, 32])
    def test_exactly_one_caller_wins(self, shared_services, seed, callers):
        seed(shared_services, code="ABC123")

        results = scan_concurrently(shared_services, ["ABC123"] * callers)

        outcomes = Counter(r.outcome for r in results)
        assert outcomes[CheckInOutcome.SUCCESS] == 1
        assert outcomes[CheckInOutcome.ALREADY_USED] == callers - 1
        snapshot = shared_services.counter.snapshot("E1")
        assert snapshot.checked_in == 1
        ticket = shared_services.store.get_by_code(TicketCode("ABC123"))
        assert ticket.state is TicketState.USED

    def test_losers_report_winners_timestamp(self, shared_services, seed):
        seed(shared_services, code="ABC123")

        results = scan_concurrently(shared_services, ["ABC123"] * 10)

        winner = next(r for r in results if r.outcome is CheckInOutcome.SUCCESS)
        for result in results:
            assert result.ticket.checked_in_at == winner.ticket.checked_in_at

    def test_interleaved_tickets_all_counted(self, shared_services, seed):
        codes = [f"TIX{i:04d}" for i in range(20)]
        for code in codes:
            seed(shared_services, code=code)

        results = scan_concurrently(shared_services, codes * 3)

        outcomes = Counter(r.outcome for r in results)
        assert outcomes[CheckInOutcome.SUCCESS] == len(codes)
        assert outcomes[CheckInOutcome.ALREADY_USED] == len(codes) * 2
        snapshot = shared_services.counter.snapshot("E1")
        assert (snapshot.sold, snapshot.checked_in) == (len(codes), len(codes))

    def test_interleaved_events_counted_separately(self, shared_services, seed):
        scans = []
        for event_id, count in (("E1", 12), ("E2", 7)):
            for i in range(count):
                code = f"{event_id}T{i:03d}"
                seed(shared_services, code=code, event_id=event_id)
                scans.append((code, event_id))
        seed(shared_services, code="E2UNUSED", event_id="E2")
        interleaved = [scan for pair in zip(scans, reversed(scans)) for scan in pair]
        interleaved += [(code, "E2") for code, _ in scans[:5]]

        results = scan_pairs_concurrently(shared_services, interleaved)

        successes = Counter(
            event_id
            for (_, event_id), result in zip(interleaved, results)
            if result.outcome is CheckInOutcome.SUCCESS
        )
        assert successes == {"E1": 12, "E2": 7}
        for event_id in ("E1", "E2"):
            snapshot = shared_services.counter.snapshot(event_id)
            assert snapshot.checked_in == successes[event_id]
        assert shared_services.counter.snapshot("E2").sold == 8

    def test_one_checkin_update_per_ticket(self, shared_services, seed):
        seed(shared_services, code="ABC123")
        subscription = shared_services.publisher.subscribe(EventId("E1"))

        scan_concurrently(shared_services, ["ABC123"] * 8)
        subscription.close()

        kinds = Counter(update.type for update in subscription)
        assert kinds[LiveUpdateType.CHECKIN_SUCCESS] == 1
        assert kinds[LiveUpdateType.COUNTER_UPDATE] == 1
