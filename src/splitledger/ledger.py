"""Pure balance-graph logic. No I/O, no side effects beyond the graph passed in.

A balance graph maps member id -> {counterpart id -> signed amount}.
graph[a][b] > 0 means b owes a; graph[b][a] always holds the negation.
Entries within EPSILON of zero are removed rather than stored.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping, MutableMapping
from decimal import Decimal

from .models import EPSILON, BalanceGraph, is_zero


def adjust_balance(
    graph: Mapping[str, MutableMapping[str, Decimal]],
    creditor: str,
    debtor: str,
    delta: Decimal,
) -> None:
    """
    Move `delta` of debt from debtor to creditor, keeping the graph anti-symmetric.

    graph[creditor][debtor] grows by delta and graph[debtor][creditor] shrinks by
    the same amount. A negative delta reverses the direction. When the pair
    lands within EPSILON of zero, both entries are removed.

    Args:
        graph: Balance graph; must already have rows for creditor and debtor
        creditor: Member whose claim grows
        debtor: Member whose debt grows
        delta: Amount to move
    """
    if creditor == debtor:
        return

    forward = graph[creditor].get(debtor, Decimal("0")) + delta

    if is_zero(forward):
        graph[creditor].pop(debtor, None)
        graph[debtor].pop(creditor, None)
    else:
        graph[creditor][debtor] = forward
        graph[debtor][creditor] = -forward


def net_positions(graph: Mapping[str, Mapping[str, Decimal]]) -> dict[str, Decimal]:
    """
    Net position per member: everything owed to them minus everything they owe.

    Only positive entries are folded in (creditor +amount, debtor -amount) so each
    symmetric pair is counted once.
    """
    net: dict[str, Decimal] = {member: Decimal("0") for member in graph}
    for creditor, row in graph.items():
        for debtor, amount in row.items():
            if amount > 0:
                net[creditor] = net.get(creditor, Decimal("0")) + amount
                net[debtor] = net.get(debtor, Decimal("0")) - amount
    return net


def is_antisymmetric(graph: Mapping[str, Mapping[str, Decimal]]) -> bool:
    """True if graph[a][b] == -graph[b][a] for every stored pair and no zeros are stored."""
    for a, row in graph.items():
        for b, amount in row.items():
            if is_zero(amount):
                return False
            if graph.get(b, {}).get(a) != -amount:
                return False
    return True


def snapshot(graph: Mapping[str, Mapping[str, Decimal]]) -> BalanceGraph:
    """Deep copy of a balance graph, safe to hand to callers."""
    return {member: dict(row) for member, row in graph.items()}


def edge_count(graph: Mapping[str, Mapping[str, Decimal]]) -> int:
    """Number of distinct debts (each symmetric pair counted once)."""
    return sum(1 for row in graph.values() for amount in row.values() if amount > 0)


def _ranked(net: Mapping[str, Decimal]) -> tuple[list[list], list[list]]:
    """
    Split net positions into creditors and debtors, largest amount first.

    Members within EPSILON of zero are dropped. Debtor amounts are stored
    positive. Ties are ordered by member id so results are reproducible.
    """
    creditors = [[member, amount] for member, amount in net.items() if amount > EPSILON]
    debtors = [[member, -amount] for member, amount in net.items() if amount < -EPSILON]

    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (-x[1], x[0]))
    return creditors, debtors


def settlement_plan(
    graph: Mapping[str, Mapping[str, Decimal]],
) -> list[tuple[str, str, Decimal]]:
    """
    Greedy min-cash-flow settlement of a balance graph.

    Pairs the largest creditor with the largest debtor, settles the smaller of
    the two amounts, and advances whichever side is (nearly) cleared. Produces
    at most creditors + debtors - 1 transfers. This is the standard greedy
    heuristic, not a provably minimal partition.

    Returns:
        List of (debtor, creditor, amount) transfers
    """
    creditors, debtors = _ranked(net_positions(graph))

    transfers: list[tuple[str, str, Decimal]] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, credit = creditors[i]
        debtor, debt = debtors[j]

        amount = min(credit, debt)
        transfers.append((debtor, creditor, amount))

        creditors[i][1] = credit - amount
        debtors[j][1] = debt - amount

        if creditors[i][1] < EPSILON:
            i += 1
        if debtors[j][1] < EPSILON:
            j += 1

    return transfers


def simplify_debts(graph: Mapping[str, Mapping[str, Decimal]]) -> BalanceGraph:
    """
    Rebuild a balance graph with the fewest edges the greedy heuristic finds.

    Every member's net position is preserved; only the pairwise edges change.
    Every member of the input keeps a (possibly empty) row.

    Args:
        graph: Current balance graph (not modified)

    Returns:
        Fresh balance graph containing only the settlement edges
    """
    simplified: BalanceGraph = {member: {} for member in graph}
    for debtor, creditor, amount in settlement_plan(graph):
        simplified.setdefault(creditor, {})
        simplified.setdefault(debtor, {})
        adjust_balance(simplified, creditor, debtor, amount)
    return simplified


def debts_from_graph(
    graph: Mapping[str, Mapping[str, Decimal]],
    order: Iterable[str] | None = None,
) -> list[tuple[str, str, Decimal]]:
    """
    Flatten a balance graph into (debtor, creditor, amount) tuples.

    Args:
        graph: Balance graph
        order: Creditor order for output (defaults to graph order)
    """
    debts: list[tuple[str, str, Decimal]] = []
    by_creditor: dict[str, list[tuple[str, Decimal]]] = defaultdict(list)
    for creditor, row in graph.items():
        for debtor, amount in row.items():
            if amount > 0:
                by_creditor[creditor].append((debtor, amount))
    for creditor in order if order is not None else graph.keys():
        for debtor, amount in by_creditor.get(creditor, []):
            debts.append((debtor, creditor, amount))
    return debts
