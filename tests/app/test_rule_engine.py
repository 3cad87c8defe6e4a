from __future__ import annotations

import threading

import pytest

from bundlekit.app.install.rules import RuleSet, run_targets
from bundlekit.domain.errors import RuleError


def test_prerequisites_run_first_and_once() -> None:
    log: list[str] = []
    rules = RuleSet()
    rules.add_action("compile", lambda: log.append("compile"))
    rules.add_action("test", lambda: log.append("test"), prerequisites=["compile"])
    rules.add_action("install", lambda: log.append("install"), prerequisites=["compile", "test"])

    run_targets(rules, ["install", "compile"])

    assert log == ["compile", "test", "install"]


def test_missing_targets_are_skipped() -> None:
    log: list[str] = []
    rules = RuleSet()
    rules.add_action("build", lambda: log.append("build"), prerequisites=["generated"])
    run_targets(rules, ["nope", "build"])
    assert log == ["build"]


def test_cycle_is_rejected() -> None:
    rules = RuleSet()
    rules.rule("a", ["b"])
    rules.rule("b", ["a"])
    with pytest.raises(RuleError, match="cycle"):
        run_targets(rules, ["a"])


def test_failure_propagates() -> None:
    rules = RuleSet()

    def boom() -> None:
        raise RuleError("step failed")

    rules.add_action("build", boom)
    with pytest.raises(RuleError):
        run_targets(rules, ["build"])


def test_independent_rules_share_a_wave() -> None:
    seen: set[str] = set()
    lock = threading.Lock()
    rules = RuleSet()
    for name in ("a", "b", "c"):
        rules.add_action(name, lambda name=name: (lock.acquire(), seen.add(name), lock.release()))
    rules.rule("all", ["a", "b", "c"])

    run_targets(rules, ["all"], workers=3)

    assert seen == {"a", "b", "c"}
