"""Namespace name templating and validation.

Namespace names are generated from a format string in which ``%i``,
``%n`` and ``%d`` stand for the Keystone project id, project name and
domain. The format is validated once when the sync config is loaded;
names are rendered for each project at sync time.
"""

import logging
import re
from collections.abc import Iterable

from constants import ALLOWED_DATA_TYPES_TO_SYNC, MAX_NAMESPACE_NAME_LENGTH
from metrics import NAMESPACE_NAME_FALLBACKS
from models import ConfigValidationError

logger = logging.getLogger(__name__)

PLACEHOLDER_ID = "%i"
PLACEHOLDER_NAME = "%n"
PLACEHOLDER_DOMAIN = "%d"

_PLACEHOLDER_RE = re.compile(r"%[ind]")

# Lower and upper case alphanumerics, '-', '_' and '.', starting and
# ending with an alphanumeric character
NAMESPACE_NAME_RE = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9_.-]*[a-zA-Z0-9]")

# Stand-in for every placeholder when checking the format's characters
_TEST_VALUE = "aa"


def _substitute(template: str, values: dict[str, str]) -> str:
    """Replace all placeholders in a single pass over the template.

    Substituted values are never scanned again, so a project name that
    itself contains '%i' is inserted literally.
    """
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], template)


def validate_namespace_format(
    template: str,
    data_types_to_sync: Iterable[str],
    allowed_data_types: frozenset[str] = ALLOWED_DATA_TYPES_TO_SYNC,
) -> None:
    """Validate a namespace format and the data types to sync.

    Raises:
        ConfigValidationError: if the format has no %i, contains characters
            not allowed in namespace names, or a data type is unsupported.
    """
    # Namespace name must contain keystone project id
    if PLACEHOLDER_ID not in template:
        raise ConfigValidationError(
            "format string should comprise a %i substring (keystone project id)"
        )

    test_name = _substitute(
        template,
        {
            PLACEHOLDER_ID: _TEST_VALUE,
            PLACEHOLDER_NAME: _TEST_VALUE,
            PLACEHOLDER_DOMAIN: _TEST_VALUE,
        },
    )
    if not NAMESPACE_NAME_RE.fullmatch(test_name):
        raise ConfigValidationError(
            "namespace name must consist of alphanumeric characters, '-', '_' "
            "or '.', and must start and end with an alphanumeric character"
        )

    for data_type in data_types_to_sync:
        if data_type not in allowed_data_types:
            raise ConfigValidationError(
                f"Unsupported data type to sync: {data_type}. "
                f"Available values: {','.join(sorted(allowed_data_types))}"
            )


def render_namespace_name(template: str, id: str, name: str, domain: str) -> str:
    """Generate a namespace name from a format string.

    Falls back to the bare project id when the result is longer than
    Kubernetes allows.
    """
    result = _substitute(
        template,
        {PLACEHOLDER_ID: id, PLACEHOLDER_NAME: name, PLACEHOLDER_DOMAIN: domain},
    )

    if len(result) > MAX_NAMESPACE_NAME_LENGTH:
        logger.warning(
            "Generated namespace name '%s' exceeds the maximum possible length "
            "of %d characters. Just Keystone project id '%s' will be used as "
            "the namespace name.",
            result,
            MAX_NAMESPACE_NAME_LENGTH,
            id,
        )
        NAMESPACE_NAME_FALLBACKS.inc()
        return id

    return result


class NamespaceNameFormatter:
    """Validates a namespace format and renders names from it."""

    def __init__(
        self,
        template: str,
        allowed_data_types: frozenset[str] = ALLOWED_DATA_TYPES_TO_SYNC,
    ) -> None:
        self.template = template
        self.allowed_data_types = allowed_data_types

    def validate(self, data_types_to_sync: Iterable[str] = ()) -> None:
        """Validate the format and the data types to sync."""
        validate_namespace_format(
            self.template, data_types_to_sync, self.allowed_data_types
        )

    def render(self, id: str, name: str, domain: str) -> str:
        """Render a namespace name for a project."""
        return render_namespace_name(self.template, id, name, domain)

    def __repr__(self) -> str:
        return f"NamespaceNameFormatter(template={self.template!r})"
