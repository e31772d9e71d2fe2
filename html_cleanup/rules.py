"""
Rule sets: the declarative configuration driving a cleanup run.

A rule set is loaded once per run (usually from a YAML file, one per target
site) and is immutable afterwards. Phases always run in the same order:

    1. pre_remove     selectors removed before any structural edit
    2. directives     structural edits, ordered by their explicit ``step``
    3. post_remove    selectors removed after the structural edits
    4. whitelist      optional projection keeping only matching subtrees
"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import soupsieve
import yaml

from .errors import RuleSetError

logger = logging.getLogger(__name__)

RULESET_PACKAGE = "html_cleanup.rulesets"
DEFAULT_RULESET = "default"

RULESET_KEYS: set[str] = {
    "name", "title_selector",
    "pre_remove", "directives", "post_remove", "whitelist",
    "link_policy", "svg_policy", "icon_selector", "icon_height",
}

# Directive parameters holding CSS selectors
SELECTOR_PARAMS: set[str] = {"selector", "except_within", "icon_selector"}


class LinkPolicy(str, Enum):
    """What flatten_links does with anchors that have no text."""
    EMPTY_HREF = "empty-href"
    REMOVE = "remove"


class SvgPolicy(str, Enum):
    """What process_svgs does with inline vector graphics."""
    STRIP_NON_ICONS = "strip-non-icons"
    RETAIN_ALL = "retain-all"


def check_selector(selector: str, where: str) -> str:
    """Compile a CSS selector, raising RuleSetError when it is malformed."""
    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise RuleSetError(f"Invalid selector in {where}: {selector!r} ({e})") from None
    return selector


@dataclass(frozen=True)
class ElementRemovalSpec:
    """
    Elements to remove. Unconditional unless both ``attribute`` and
    ``content`` are given, in which case a match is only removed when the
    attribute value contains ``content``.
    """
    selector: str
    attribute: str | None = None
    content: str | None = None

    def __post_init__(self):
        if not isinstance(self.selector, str) or not self.selector:
            raise RuleSetError("Element removal spec needs a selector")
        if (self.attribute is None) != (self.content is None):
            raise RuleSetError(
                f"Element removal spec for '{self.selector}' must give both 'attribute' and 'content' or neither"
            )
        check_selector(self.selector, "element removal spec")

    @property
    def is_conditional(self) -> bool:
        return self.attribute is not None


@dataclass(frozen=True)
class DuplicateVariantPair:
    """If both selectors match, everything matched by ``remove`` is redundant."""
    keep: str
    remove: str

    def __post_init__(self):
        check_selector(self.keep, "duplicate variant pair")
        check_selector(self.remove, "duplicate variant pair")


@dataclass(frozen=True)
class Directive:
    step: int
    name: str
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class RuleSet:
    name: str = "unnamed"
    title_selector: str | None = None
    pre_remove: tuple[str, ...] = ()
    directives: tuple[Directive, ...] = ()
    post_remove: tuple[str, ...] = ()
    whitelist: tuple[str, ...] = ()
    link_policy: LinkPolicy = LinkPolicy.EMPTY_HREF
    svg_policy: SvgPolicy = SvgPolicy.STRIP_NON_ICONS
    icon_selector: str = "svg.icon"
    icon_height: str = "1em"

    def __post_init__(self):
        steps = [d.step for d in self.directives]
        if any(later <= earlier for earlier, later in zip(steps, steps[1:])):
            raise RuleSetError(f"Directive steps must be unique and ascending, got {steps}")


def _selector_list(data: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key) or []
    if isinstance(value, str) or not isinstance(value, list):
        raise RuleSetError(f"'{key}' must be a list of selectors")
    for selector in value:
        if not isinstance(selector, str) or not selector.strip():
            raise RuleSetError(f"'{key}' contains an empty or non-string selector: {selector!r}")
        check_selector(selector, f"'{key}'")
    return tuple(value)


def _optional_str(data: Mapping[str, Any], key: str, default: str | None) -> str | None:
    value = data.get(key, default)
    if value is not None and not isinstance(value, str):
        raise RuleSetError(f"'{key}' must be a string")
    return value or default


def parse_removal_specs(items: Any) -> tuple[ElementRemovalSpec, ...]:
    if not isinstance(items, list):
        raise RuleSetError("Element removal specs must be a list")
    specs: list[ElementRemovalSpec] = []
    for item in items:
        if isinstance(item, str):
            specs.append(ElementRemovalSpec(item))
        elif isinstance(item, dict):
            unknown = set(item) - {"selector", "attribute", "content"}
            if unknown:
                raise RuleSetError(f"Unknown element removal keys: {sorted(unknown)}")
            specs.append(ElementRemovalSpec(item.get("selector", ""), item.get("attribute"), item.get("content")))
        else:
            raise RuleSetError(f"Invalid element removal spec: {item!r}")
    return tuple(specs)


def parse_variant_pairs(items: Any) -> tuple[DuplicateVariantPair, ...]:
    if not isinstance(items, list):
        raise RuleSetError("Duplicate variant pairs must be a list")
    pairs: list[DuplicateVariantPair] = []
    for item in items:
        if not isinstance(item, dict) or set(item) != {"keep", "remove"}:
            raise RuleSetError(f"Duplicate variant pair needs exactly 'keep' and 'remove': {item!r}")
        if not all(isinstance(item[k], str) and item[k].strip() for k in ("keep", "remove")):
            raise RuleSetError(f"Duplicate variant pair selectors must be non-empty strings: {item!r}")
        pairs.append(DuplicateVariantPair(item["keep"], item["remove"]))
    return tuple(pairs)


def _parse_directives(items: Any, known: Mapping[str, Any]) -> tuple[Directive, ...]:
    if items is None:
        return ()
    if not isinstance(items, list):
        raise RuleSetError("'directives' must be a list")

    directives: list[Directive] = []
    last_step: int | None = None
    for item in items:
        if not isinstance(item, dict):
            raise RuleSetError(f"Directive must be a mapping: {item!r}")
        params = dict(item)
        step = params.pop("step", None)
        name = params.pop("name", None)
        if not isinstance(step, int) or isinstance(step, bool):
            raise RuleSetError(f"Directive {name!r} needs an integer 'step'")
        if name not in known:
            raise RuleSetError(f"Unknown directive: {name!r}")
        if last_step is not None and step <= last_step:
            raise RuleSetError(
                f"Directive steps must be unique and ascending: step {step} ({name}) follows step {last_step}"
            )
        last_step = step

        # Nested rule data is validated here rather than at run time
        if "specs" in params:
            params["specs"] = parse_removal_specs(params["specs"])
        if "pairs" in params:
            params["pairs"] = parse_variant_pairs(params["pairs"])
        if "policy" in params:
            params["policy"] = _parse_policy(name, params["policy"])
        for key in sorted(params.keys() & SELECTOR_PARAMS):
            values = params[key] if isinstance(params[key], list) else [params[key]]
            for selector in values:
                if not isinstance(selector, str) or not selector.strip():
                    raise RuleSetError(f"Directive {name!r} (step {step}): '{key}' must hold selectors")
                check_selector(selector, f"directive {name!r} (step {step})")
        try:
            inspect.signature(known[name]).bind(None, None, **params)
        except TypeError as e:
            raise RuleSetError(f"Invalid parameters for directive {name!r} (step {step}): {e}") from None
        directives.append(Directive(step, name, MappingProxyType(params)))
    return tuple(directives)


def _parse_policy(directive_name: str, value: Any) -> Enum:
    enum_type = SvgPolicy if directive_name == "process_svgs" else LinkPolicy
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(p.value for p in enum_type)
        raise RuleSetError(f"Invalid policy {value!r} for {directive_name}; expected one of: {allowed}") from None


def ruleset_from_dict(data: Mapping[str, Any]) -> RuleSet:
    """Validate a plain mapping (as loaded from YAML) into a RuleSet."""
    from .directives import DIRECTIVES

    if not isinstance(data, Mapping):
        raise RuleSetError("Rule set must be a mapping")
    unknown = set(data) - RULESET_KEYS
    if unknown:
        raise RuleSetError(f"Unknown rule set keys: {sorted(unknown)}")

    try:
        link_policy = LinkPolicy(data.get("link_policy", LinkPolicy.EMPTY_HREF.value))
        svg_policy = SvgPolicy(data.get("svg_policy", SvgPolicy.STRIP_NON_ICONS.value))
    except ValueError as e:
        raise RuleSetError(f"Invalid policy: {e}") from None

    title_selector = _optional_str(data, "title_selector", None)
    icon_selector = _optional_str(data, "icon_selector", "svg.icon")
    if title_selector:
        check_selector(title_selector, "'title_selector'")
    check_selector(icon_selector, "'icon_selector'")

    return RuleSet(
        name=_optional_str(data, "name", "unnamed"),
        title_selector=title_selector,
        pre_remove=_selector_list(data, "pre_remove"),
        directives=_parse_directives(data.get("directives"), DIRECTIVES),
        post_remove=_selector_list(data, "post_remove"),
        whitelist=_selector_list(data, "whitelist"),
        link_policy=link_policy,
        svg_policy=svg_policy,
        icon_selector=icon_selector,
        icon_height=_optional_str(data, "icon_height", "1em"),
    )


def load_ruleset(source: str | Path = DEFAULT_RULESET) -> RuleSet:
    """
    Load a rule set by bundled name (e.g. ``default``) or from a YAML file path.
    """
    path = Path(source)
    if path.suffix in (".yaml", ".yml") or path.is_file():
        if not path.is_file():
            raise RuleSetError(f"Rule set file not found: {path}")
        logger.info(f"Loading rule set from {path}")
        text = path.read_text(encoding="utf-8")
    else:
        bundled = resources.files(RULESET_PACKAGE).joinpath(f"{source}.yaml")
        if not bundled.is_file():
            raise RuleSetError(f"No bundled rule set named '{source}'. Available: {', '.join(bundled_rulesets())}")
        logger.info(f"Loading bundled rule set: {source}")
        text = bundled.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleSetError(f"Rule set {source} is not valid YAML: {e}") from e
    return ruleset_from_dict(data or {})


def bundled_rulesets() -> list[str]:
    return sorted(
        entry.name.removesuffix(".yaml")
        for entry in resources.files(RULESET_PACKAGE).iterdir()
        if entry.name.endswith(".yaml")
    )
