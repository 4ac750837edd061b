"""Roles, priced actions and the wisdom-coin pricing table.

Every coin movement in the platform is one of the ``ActionKind`` values
below. The table maps each ``(Role, ActionKind)`` pair to a ``Price``; it is
built from settings and checked for exhaustiveness when built, so adding a
role or an action without pricing it fails loudly at startup.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import lru_cache

from ailesson.config import Settings, get_settings


class Role(str, enum.Enum):
    """Closed set of account roles."""

    LEARNER = "learner"
    INSTRUCTOR = "instructor"
    GUARDIAN = "guardian"
    ADMINISTRATOR = "administrator"


class ActionKind(str, enum.Enum):
    """Operations that cost or grant wisdom coins."""

    REGISTRATION = "registration"
    DAILY_REWARD = "daily_reward"
    LESSON_CREATION = "lesson_creation"
    CHAT_MESSAGE = "chat_message"
    ANSWER_REWARD = "answer_reward"
    LEADERBOARD_WIN = "leaderboard_win"
    ADMIN_GRANT = "admin_grant"


class ReasonCode(str, enum.Enum):
    """Reason recorded on every ledger entry."""

    INITIAL = "initial"
    DAILY = "daily"
    LESSON_COST = "lesson_cost"
    CHAT_COST = "chat_cost"
    ANSWER_REWARD = "answer_reward"
    ADMIN_GRANT = "admin_grant"
    LEADERBOARD_REWARD = "leaderboard_reward"


ACTION_REASONS: dict[ActionKind, ReasonCode] = {
    ActionKind.REGISTRATION: ReasonCode.INITIAL,
    ActionKind.DAILY_REWARD: ReasonCode.DAILY,
    ActionKind.LESSON_CREATION: ReasonCode.LESSON_COST,
    ActionKind.CHAT_MESSAGE: ReasonCode.CHAT_COST,
    ActionKind.ANSWER_REWARD: ReasonCode.ANSWER_REWARD,
    ActionKind.LEADERBOARD_WIN: ReasonCode.LEADERBOARD_REWARD,
    ActionKind.ADMIN_GRANT: ReasonCode.ADMIN_GRANT,
}

# Roles allowed to spend past their balance
_BALANCE_EXEMPT_ROLES = frozenset({Role.ADMINISTRATOR})


@dataclass(frozen=True)
class Price:
    """Outcome of a priced action for one role.

    ``delta`` is the signed coin change; ``None`` means the caller supplies
    the amount (admin grants). A ``waived`` price changes nothing and writes
    no ledger entry.
    """

    delta: int | None
    reason: ReasonCode
    waived: bool = False


def is_exempt_from_balance_checks(role: Role | str) -> bool:
    """True if the role may never be rejected for insufficient funds."""
    return Role(role) in _BALANCE_EXEMPT_ROLES


def build_pricing_table(settings: Settings) -> dict[tuple[Role, ActionKind], Price]:
    """Build the full (role, action) -> price mapping from settings."""
    registration = {
        Role.LEARNER: settings.learner_initial_coins,
        Role.INSTRUCTOR: settings.instructor_initial_coins,
        Role.GUARDIAN: settings.guardian_initial_coins,
        Role.ADMINISTRATOR: settings.administrator_initial_coins,
    }

    table: dict[tuple[Role, ActionKind], Price] = {}
    for role in Role:
        table[(role, ActionKind.REGISTRATION)] = Price(registration[role], ReasonCode.INITIAL)
        table[(role, ActionKind.DAILY_REWARD)] = Price(settings.daily_reward_coins, ReasonCode.DAILY)
        table[(role, ActionKind.LESSON_CREATION)] = Price(
            -settings.lesson_creation_cost,
            ReasonCode.LESSON_COST,
            waived=role is Role.ADMINISTRATOR,
        )
        table[(role, ActionKind.CHAT_MESSAGE)] = Price(-settings.chat_message_cost, ReasonCode.CHAT_COST)
        table[(role, ActionKind.ANSWER_REWARD)] = Price(settings.answer_reward_coins, ReasonCode.ANSWER_REWARD)
        table[(role, ActionKind.LEADERBOARD_WIN)] = Price(
            settings.leaderboard_win_coins, ReasonCode.LEADERBOARD_REWARD
        )
        table[(role, ActionKind.ADMIN_GRANT)] = Price(None, ReasonCode.ADMIN_GRANT)

    _check_exhaustive(table)
    return table


def _check_exhaustive(table: dict[tuple[Role, ActionKind], Price]) -> None:
    missing = [(r.value, a.value) for r in Role for a in ActionKind if (r, a) not in table]
    if missing:
        msg = f"Pricing table has no entry for: {missing}"
        raise RuntimeError(msg)
    for (_, action), price in table.items():
        if price.reason is not ACTION_REASONS[action]:
            msg = f"Pricing for {action.value} must use reason {ACTION_REASONS[action].value}"
            raise RuntimeError(msg)


@lru_cache
def get_pricing_table() -> dict[tuple[Role, ActionKind], Price]:
    """Pricing table for the current settings (cached)."""
    return build_pricing_table(get_settings())


def price_for(role: Role | str, action: ActionKind) -> Price:
    """Look up the price of ``action`` for ``role``."""
    return get_pricing_table()[(Role(role), action)]
