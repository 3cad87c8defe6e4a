"""Named rules and the target runner used for a bundle's phases."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List

from bundlekit.domain.errors import RuleError

Action = Callable[[], None]


@dataclass
class Rule:
    name: str
    prerequisites: List[str] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)

    def run(self) -> None:
        for action in self.actions:
            action()


class RuleSet:
    """Rules of one bundle. Never shared between bundles."""

    def __init__(self) -> None:
        self._rules: Dict[str, Rule] = {}

    def rule(self, name: str, prerequisites: Iterable[str] = ()) -> Rule:
        entry = self._rules.get(name)
        if entry is None:
            entry = self._rules[name] = Rule(name=name)
        for prerequisite in prerequisites:
            if prerequisite not in entry.prerequisites:
                entry.prerequisites.append(prerequisite)
        return entry

    def add_action(self, name: str, action: Action, prerequisites: Iterable[str] = ()) -> Rule:
        entry = self.rule(name, prerequisites)
        entry.actions.append(action)
        return entry

    def get(self, name: str) -> Rule | None:
        return self._rules.get(name)

    def names(self) -> List[str]:
        return sorted(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def run_targets(rules: RuleSet, targets: Iterable[str], workers: int | None = None) -> None:
    """Run ``targets`` and their prerequisites, each rule at most once.

    Targets and prerequisites missing from ``rules`` are skipped. Rules whose
    prerequisites are done run together in a wave, on up to ``workers``
    threads; the first failing action aborts the run.
    """
    needed = _collect(rules, targets)
    for wave in _waves(rules, needed):
        if workers is None or workers <= 1 or len(wave) == 1:
            for name in wave:
                rules.get(name).run()  # type: ignore[union-attr]
            continue
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(rules.get(name).run) for name in wave]  # type: ignore[union-attr]
            for future in futures:
                future.result()


def _collect(rules: RuleSet, targets: Iterable[str]) -> List[str]:
    order: List[str] = []
    done: set[str] = set()
    visiting: List[str] = []

    def visit(name: str) -> None:
        if name in done or name not in rules:
            return
        if name in visiting:
            cycle = visiting[visiting.index(name):] + [name]
            raise RuleError("rule cycle detected: " + " -> ".join(cycle))
        visiting.append(name)
        for prerequisite in rules.get(name).prerequisites:  # type: ignore[union-attr]
            visit(prerequisite)
        visiting.pop()
        done.add(name)
        order.append(name)

    for target in targets:
        visit(target)
    return order


def _waves(rules: RuleSet, needed: List[str]) -> List[List[str]]:
    pending = list(needed)
    finished: set[str] = set()
    waves: List[List[str]] = []
    while pending:
        wave = [
            name
            for name in pending
            if all(dep in finished or dep not in rules for dep in rules.get(name).prerequisites)  # type: ignore[union-attr]
        ]
        waves.append(wave)
        finished.update(wave)
        pending = [name for name in pending if name not in finished]
    return waves


__all__ = ["Action", "Rule", "RuleSet", "run_targets"]
