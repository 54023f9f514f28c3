"""Scenario runner — replays a YAML list of ledger operations in simulation.

Example::

    continue_on_error: false
    steps:
      - {op: fund, user: alice, token: sOHM, amount: 1000}
      - {op: add, user: alice, amount: 1000}
      - {op: open, user: alice, ohm_desired: 100, osx_desired: 100}
      - {op: advance, blocks: 50}
      - {op: harvest, user: alice}
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from .errors import LedgerError
from .models import VaultSnapshot
from .simulation import SimEnvironment

logger = logging.getLogger(__name__)

# Far enough in the future that router deadlines never bite unless a step sets one
DEFAULT_DEADLINE = 2**63 - 1


@dataclass(frozen=True)
class Step:
    op: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Scenario:
    steps: tuple[Step, ...] = ()
    continue_on_error: bool = False


@dataclass(frozen=True)
class StepOutcome:
    index: int
    op: str
    ok: bool
    result: Any = None
    error: str = ""


@dataclass(frozen=True)
class ScenarioResult:
    outcomes: tuple[StepOutcome, ...]
    snapshot: VaultSnapshot

    @property
    def failures(self) -> tuple[StepOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_scenario(raw: dict[str, Any]) -> Scenario:
    steps: list[Step] = []
    for i, entry in enumerate(raw.get("steps") or []):
        if not isinstance(entry, dict) or "op" not in entry:
            raise ValueError(f"Step {i} has no 'op'")
        args = {k: v for k, v in entry.items() if k != "op"}
        if entry["op"] not in _HANDLERS:
            raise ValueError(f"Step {i} has unknown op '{entry['op']}'")
        steps.append(Step(op=entry["op"], args=args))
    return Scenario(
        steps=tuple(steps),
        continue_on_error=bool(raw.get("continue_on_error", False)),
    )


def load_scenario(path: str | Path) -> Scenario:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {path}")
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return parse_scenario(raw)


# ---------------------------------------------------------------------------
# Step handlers
# ---------------------------------------------------------------------------


def _open(env: SimEnvironment, a: dict[str, Any]) -> Any:
    return env.vault.open(
        a["user"],
        int(a["ohm_desired"]),
        int(a.get("ohm_min", 0)),
        int(a["osx_desired"]),
        int(a.get("osx_min", 0)),
        int(a.get("deadline", DEFAULT_DEADLINE)),
    )


def _close(env: SimEnvironment, a: dict[str, Any]) -> Any:
    lp = a.get("lp", "all")
    if lp == "all":
        lp = env.vault.user_info(a["user"]).lp
    return env.vault.close(
        a["user"],
        int(lp),
        int(a.get("ohm_min", 0)),
        int(a.get("osx_min", 0)),
        int(a.get("deadline", DEFAULT_DEADLINE)),
    )


_HANDLERS: dict[str, Callable[[SimEnvironment, dict[str, Any]], Any]] = {
    "fund": lambda env, a: env.fund(a["user"], a["token"], int(a["amount"])),
    "add": lambda env, a: env.vault.add(a["user"], int(a["amount"])),
    "remove": lambda env, a: env.vault.remove(a["user"], int(a["amount"])),
    "collect_interest": lambda env, a: env.vault.collect_interest(a["user"]),
    "open": _open,
    "close": _close,
    "harvest": lambda env, a: env.vault.harvest(a["user"]),
    "advance": lambda env, a: env.chain.advance(int(a.get("blocks", 1))),
    "rebase": lambda env, a: env.collateral.rebase(int(a["index"])),
    "set_rate": lambda env, a: env.vault.set_rate(
        a.get("caller", env.vault.owner), int(a["reward_per_block"])
    ),
    "set_ceiling": lambda env, a: env.vault.set_ceiling(
        a.get("caller", env.vault.owner), int(a["ceiling"])
    ),
    "collect": lambda env, a: env.vault.collect(
        a.get("caller", env.vault.owner), a.get("to", env.vault.owner)
    ),
}


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


def run_scenario(env: SimEnvironment, scenario: Scenario) -> ScenarioResult:
    """Execute every step; a failing step stops the run unless ``continue_on_error``.

    Ledger errors are recorded by their ``code``. Bad step input (a falling
    rebase index, an unknown token, a missing argument) is recorded by the
    exception type name.
    """
    outcomes: list[StepOutcome] = []

    for i, step in enumerate(scenario.steps):
        handler = _HANDLERS[step.op]
        try:
            result = handler(env, step.args)
        except (LedgerError, ValueError, KeyError) as e:
            code = e.code if isinstance(e, LedgerError) else type(e).__name__
            logger.warning("Step %d (%s) failed: [%s] %s", i, step.op, code, e)
            outcomes.append(StepOutcome(index=i, op=step.op, ok=False, error=code))
            if not scenario.continue_on_error:
                raise
            continue

        logger.info("Step %d (%s) ok", i, step.op)
        outcomes.append(StepOutcome(index=i, op=step.op, ok=True, result=result))

    env.vault.check_invariants()
    return ScenarioResult(outcomes=tuple(outcomes), snapshot=env.vault.snapshot())


def format_report(snapshot: VaultSnapshot) -> str:
    """Human-readable ledger summary."""
    info = snapshot.info
    lines = [
        f"Block {snapshot.block}",
        f"  Collateral: {info.balance} static · Debt: {info.debt}/{info.ceiling}",
        f"  LP: {info.lp} · Accrued interest: {info.accrued} static",
        f"  Rate: {info.reward_per_block}/block · Acc/share: {info.acc_osx_per_share}",
    ]
    for u in snapshot.users:
        lines.append(
            f"  {u.address}: balance {u.user.balance} · debt {u.user.debt} · "
            f"lp {u.user.lp} · equity {u.equity} · pending {u.pending}"
        )
    return "\n".join(lines)
