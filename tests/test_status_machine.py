import pytest

from tender_ledger.utils.status_machine import (
    BidStateMachine,
    BidStatus,
    TenderStateMachine,
    TenderStatus,
)

MACHINES = [TenderStateMachine, BidStateMachine]


def _all_pairs(machine):
    for current in machine.statuses():
        for requested in machine.statuses():
            yield current, requested


@pytest.mark.parametrize("machine", MACHINES)
def test_every_declared_edge_is_valid(machine):
    for current, requested in machine.edges():
        is_valid, _ = machine.validate_transition(current, requested)
        assert is_valid, (current, requested)


@pytest.mark.parametrize("machine", MACHINES)
def test_every_undeclared_pair_is_rejected(machine):
    declared = set(machine.edges())
    for current, requested in _all_pairs(machine):
        if (current, requested) in declared:
            continue
        is_valid, message = machine.validate_transition(current, requested)
        assert not is_valid, (current, requested)
        assert message


@pytest.mark.parametrize("machine", MACHINES)
def test_self_loops_are_rejected(machine):
    for status in machine.statuses():
        is_valid, _ = machine.validate_transition(status, status)
        assert not is_valid


@pytest.mark.parametrize("machine", MACHINES)
def test_terminal_statuses_have_no_way_out(machine):
    terminals = [s for s in machine.statuses() if machine.is_terminal_status(s)]
    assert terminals
    for terminal in terminals:
        for requested in machine.statuses():
            is_valid, message = machine.validate_transition(terminal, requested)
            assert not is_valid
            assert "terminal" in message


@pytest.mark.parametrize("machine", MACHINES)
def test_graph_is_acyclic_and_starts_at_created(machine):
    assert machine.INITIAL == "Created"
    assert not machine.is_terminal_status(machine.INITIAL)

    visiting, done = set(), set()

    def visit(status):
        assert status not in visiting, f"cycle through {status}"
        if status in done:
            return
        visiting.add(status)
        for target in machine.get_allowed_transitions(status):
            visit(target)
        visiting.discard(status)
        done.add(status)

    for status in machine.statuses():
        visit(status)


def test_tender_graph():
    assert TenderStateMachine.get_allowed_transitions(TenderStatus.CREATED) == [
        TenderStatus.PUBLISHED,
        TenderStatus.CLOSED,
    ]
    assert TenderStateMachine.get_allowed_transitions(TenderStatus.PUBLISHED) == [TenderStatus.CLOSED]
    assert TenderStateMachine.is_terminal_status(TenderStatus.CLOSED)
    assert not TenderStateMachine.can_transition(TenderStatus.PUBLISHED, TenderStatus.CREATED)


def test_bid_decision_statuses_are_terminal_and_unreachable():
    for decision in (BidStatus.APPROVED, BidStatus.REJECTED):
        assert BidStateMachine.is_known_status(decision)
        assert BidStateMachine.is_terminal_status(decision)
        assert all(target != decision for _, target in BidStateMachine.edges())


def test_unknown_status_is_not_known():
    assert not TenderStateMachine.is_known_status("Open")
    assert not BidStateMachine.is_known_status("created")
    is_valid, _ = TenderStateMachine.validate_transition("Open", TenderStatus.CLOSED)
    assert not is_valid
