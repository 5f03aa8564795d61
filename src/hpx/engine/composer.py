"""Compose XDP program source from a Policy and the templates in fragments.py."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping

from hpx.engine import fragments
from hpx.engine.template import (
    MalformedLine,
    UnknownPlaceholder,
    UnknownSlotError,
    parse_template,
    render,
)
from hpx.errors import ConfigurationError, TemplateError
from hpx.policy.models import (
    GraylistConfig,
    ListConfig,
    Policy,
    ProgramType,
    resolve_default_action,
)
from hpx.reputation import DECAY_FACTOR, NS_IN_MS

logger = logging.getLogger(__name__)

BASE_TEMPLATES: dict[ProgramType, str] = {
    ProgramType.IP: fragments.BASE_IP,
    ProgramType.DNS: fragments.BASE_DNS,
}

KEY_EXTRACTORS: dict[ProgramType, str] = {
    ProgramType.IP: fragments.GET_DATA_IP,
    ProgramType.DNS: fragments.GET_DATA_DNS,
}

# Unknown base-template slots survive untouched, unterminated markers do not.
UNKNOWN_PLACEHOLDER_POLICY = UnknownPlaceholder.PASS_THROUGH
MALFORMED_LINE_POLICY = MalformedLine.DROP

Handler = Callable[[Policy], "str | None"]


def generate_source(
    policy: Policy,
    base: str | None = None,
    *,
    unknown: UnknownPlaceholder = UNKNOWN_PLACEHOLDER_POLICY,
    malformed: MalformedLine = MALFORMED_LINE_POLICY,
) -> str:
    """Render the complete C source for ``policy``.

    ``base`` overrides the program type's base template.
    """
    if base is None:
        try:
            base = BASE_TEMPLATES[policy.program_type]
        except KeyError:
            raise ConfigurationError(
                f"Unsupported program type: {policy.program_type}"
            ) from None

    template = parse_template(base)
    lines = render(
        template,
        lambda name: HANDLERS[name](policy),
        HANDLERS,
        unknown=unknown,
        malformed=malformed,
    )
    return "\n".join(lines) + "\n"


def render_map(list_name: str, config: ListConfig) -> str:
    """The LRU hash map declaration for one list."""
    return _render_fragment(
        fragments.MAP, {"list": list_name, "max": str(config.max_entries)}
    )


def render_action(
    program_type: ProgramType,
    config: ListConfig,
    list_name: str,
    promote_into: str | None = None,
) -> str:
    """Key extraction followed by the list's action fragment.

    Investigating graylists get the rate-limiting fragment; ``promote_into``
    names the map promoted IPs are copied into, if any.
    """
    try:
        extractor = KEY_EXTRACTORS[program_type]
    except KeyError:
        raise TemplateError(
            f"No key extraction fragment for program type '{program_type.value}'"
        ) from None

    scope: dict[str, str | None] = {"list": list_name}

    if isinstance(config, GraylistConfig) and config.investigates:
        scope["frequency"] = str(config.frequency)
        scope["promote"] = None
        if promote_into is not None:
            scope["promote"] = _render_fragment(
                fragments.PROMOTE,
                {
                    "list": list_name,
                    "fast_packet_threshold": str(config.fast_packet_threshold),
                    "promote_into": promote_into,
                },
            )
        return _render_fragment(extractor + fragments.GRAYLIST, scope)

    scope["action"] = config.xdp_action.value
    return _render_fragment(extractor + fragments.ACTION, scope)


def _render_fragment(text: str, scope: Mapping[str, str | None]) -> str:
    try:
        lines = render(
            parse_template(text),
            scope.__getitem__,
            scope,
            unknown=UnknownPlaceholder.ERROR,
            malformed=MalformedLine.DROP,
        )
    except UnknownSlotError as e:
        raise TemplateError(str(e)) from e
    return "\n".join(lines)


def _name(policy: Policy) -> str:
    return policy.program_name


def _default_action(policy: Policy) -> str:
    action, recognized = resolve_default_action(policy.default_action)
    if not recognized:
        logger.warning(
            "Unsupported XDP action '%s', using %s", policy.default_action, action.value
        )
    return action.value


def _map_handler(list_name: str, policy: Policy) -> str | None:
    config = policy.list_config(list_name)
    if config is None or not config.enabled:
        return None
    return render_map(list_name, config)


def _action_handler(list_name: str, policy: Policy) -> str | None:
    config = policy.list_config(list_name)
    if config is None or not config.enabled:
        return None
    promote_into = None
    if list_name == "graylist" and policy.is_enabled("blacklist"):
        promote_into = "blacklist"
    return render_action(policy.program_type, config, list_name, promote_into)


HANDLERS: dict[str, Handler] = {
    "name": _name,
    "default_action": _default_action,
    "ns_in_ms": lambda policy: str(NS_IN_MS),
    "decay_factor": lambda policy: str(DECAY_FACTOR),
}
for _list in ("whitelist", "blacklist", "graylist"):
    HANDLERS[f"{_list}_map"] = functools.partial(_map_handler, _list)
    HANDLERS[f"{_list}_action"] = functools.partial(_action_handler, _list)
