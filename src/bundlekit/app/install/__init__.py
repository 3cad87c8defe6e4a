"""Bundle installation package."""

from .project import BuildDescription, BundleOrigin, HostBindings, load_build_description
from .rules import Rule, RuleSet, run_targets
from .service import PHASES, PHASES_SKIP_DEPS, Installer, working_directory

__all__ = [
    "BuildDescription",
    "BundleOrigin",
    "HostBindings",
    "Installer",
    "PHASES",
    "PHASES_SKIP_DEPS",
    "Rule",
    "RuleSet",
    "load_build_description",
    "run_targets",
    "working_directory",
]
