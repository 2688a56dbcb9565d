"""Job parameter definitions and the form-encoded build payload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping
from urllib.parse import quote, unquote

from loguru import logger

from jenkins_dash.errors import MalformedResponse, UsageError, ValidationError

TRUE = "true"
FALSE = "false"

# Fields requested for each parameter definition.
DEFINITION_TREE = "name,type,description,defaultParameterValue[value],choices"


class ParameterType(str, Enum):
    STRING = "String"
    BOOLEAN = "Boolean"
    CHOICE = "Choice"
    TEXT = "Text"
    OTHER = "Other"

    @classmethod
    def from_jenkins(cls, type_name: Any) -> "ParameterType":
        if not isinstance(type_name, str):
            return cls.OTHER
        return _JENKINS_TYPES.get(type_name, cls.OTHER)


_JENKINS_TYPES = {
    "StringParameterDefinition": ParameterType.STRING,
    "BooleanParameterDefinition": ParameterType.BOOLEAN,
    "ChoiceParameterDefinition": ParameterType.CHOICE,
    "TextParameterDefinition": ParameterType.TEXT,
}


@dataclass(frozen=True)
class ParameterDefinition:
    name: str
    type: ParameterType
    description: str = ""
    default_value: str | None = None
    choices: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParameterEdit:
    name: str
    current_value: str


def _default_to_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return TRUE if value else FALSE
    return str(value)


def parse_parameter_definitions(document: Any, job_name: str) -> list[ParameterDefinition]:
    """Collect parameter definitions from a job's ``property`` and ``actions``.

    Jenkins reports the same definitions under both keys on most versions;
    the first declaration of a name wins.
    """
    if not isinstance(document, dict):
        raise MalformedResponse(
            f"job '{job_name}': expected a JSON object", job_name=job_name
        )

    definitions: dict[str, ParameterDefinition] = {}
    for key in ("property", "actions"):
        for holder in document.get(key) or []:
            if not isinstance(holder, dict):
                continue
            for p in holder.get("parameterDefinitions") or []:
                name = p.get("name") if isinstance(p, dict) else None
                if not isinstance(name, str):
                    raise MalformedResponse(
                        f"job '{job_name}': parameter definition without a name",
                        job_name=job_name,
                    )
                if name in definitions:
                    continue
                default_value = p.get("defaultParameterValue") or {}
                param_type = ParameterType.from_jenkins(p.get("type"))
                choices = p.get("choices") if param_type is ParameterType.CHOICE else None
                definitions[name] = ParameterDefinition(
                    name=name,
                    type=param_type,
                    description=p.get("description") or "",
                    default_value=_default_to_str(default_value.get("value")),
                    choices=tuple(str(c) for c in choices or ()),
                )
    return list(definitions.values())


def coerce_boolean(value: str, *, name: str = "") -> str:
    """Map an edited Boolean value onto the wire tokens ``true``/``false``.

    Only a recognized true token becomes ``true``. Anything else is ``false``;
    text that is neither token is logged so the silent conversion is visible.
    """
    token = value.strip().lower()
    if token == TRUE:
        return TRUE
    if token not in (FALSE, ""):
        logger.warning(
            f"Boolean parameter '{name}' has unrecognized value {value!r}; sending 'false'"
        )
    return FALSE


def encode_parameters(values: Mapping[str, Any]) -> str:
    """Build a ``name=percent-encoded(value)`` payload joined with ``&``."""
    return "&".join(
        f"{quote(name, safe='')}={quote(str(value), safe='')}"
        for name, value in values.items()
    )


def decode_parameters(body: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in body.split("&"):
        if not pair:
            continue
        name, _, value = pair.partition("=")
        values[unquote(name)] = unquote(value)
    return values


def as_text(value: Any) -> str:
    """Render a caller-supplied value the way a form field would hold it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return TRUE if value else FALSE
    return str(value)


def check_value(definition: ParameterDefinition, value: str, *, job_name: str) -> str:
    """Validate one value against its definition and return it normalized.

    Raises:
        ValidationError: A choice outside the declared set, or a boolean
            that is neither ``true`` nor ``false``.
    """
    if definition.type is ParameterType.CHOICE and value not in definition.choices:
        raise ValidationError(
            f"'{value}' is not a valid choice for '{definition.name}' "
            f"(allowed: {', '.join(definition.choices)})",
            job_name=job_name,
        )
    if definition.type is ParameterType.BOOLEAN:
        token = value.strip().lower()
        if token not in (TRUE, FALSE):
            raise ValidationError(
                f"'{value}' is not a boolean value for '{definition.name}'",
                job_name=job_name,
            )
        return token
    return value


def resolve_values(
    definitions: Iterable[ParameterDefinition],
    values: Mapping[str, Any],
    *,
    job_name: str,
) -> dict[str, str]:
    """Turn edited values into the values sent with a build request.

    ``values`` must name exactly the defined parameters. Empty values fall
    back to the definition's default, non-empty choices are checked against
    the declared set, and booleans are coerced to ``true``/``false``.
    """
    definitions = list(definitions)
    names = {d.name for d in definitions}
    if set(values) != names:
        unknown = sorted(set(values) - names)
        missing = sorted(names - set(values))
        raise UsageError(
            f"Parameters of '{job_name}' do not match its definitions "
            f"(unknown: {', '.join(unknown) or '-'}; missing: {', '.join(missing) or '-'})",
            job_name=job_name,
        )

    resolved = {}
    for definition in definitions:
        value = as_text(values[definition.name]) or definition.default_value or ""
        if definition.type is ParameterType.BOOLEAN:
            value = coerce_boolean(value, name=definition.name)
        elif value and definition.type is ParameterType.CHOICE:
            value = check_value(definition, value, job_name=job_name)
        resolved[definition.name] = value
    return resolved
