"""Proportional payout arithmetic (integer only)."""

from __future__ import annotations


def winning_total(total_side_a: int, total_side_b: int, outcome: bool) -> int:
    return total_side_a if outcome else total_side_b


def compute_reward(user_stake: int, total_side_a: int, total_side_b: int, outcome: bool) -> int:
    """
    floor(user_stake * pool / winning_total).
    Returns 0 when the user has no winning stake or nobody backed the winning side.
    Floor division can leave a residue in custody; it never pays out more than the pool.
    """
    winners = winning_total(total_side_a, total_side_b, outcome)
    if user_stake <= 0 or winners <= 0:
        return 0
    pool = total_side_a + total_side_b
    return (user_stake * pool) // winners
