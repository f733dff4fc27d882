"""
Utilities for string interpolation using environment variables.
"""
import logging
import re
from typing import Dict, List

logger = logging.getLogger(__name__)

# Group 1: escaped "$$"
# Group 2: VAR name
# Group 3: - or +
# Group 4: default or alternative value
_PATTERN = re.compile(r'(\$\$)|\$\{([A-Za-z_][A-Za-z0-9_]*)(?::(-|\+)([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Utility for interpolating environment variables in topology documents.
    Supports ${VAR}, ${VAR:-default}, ${VAR:+value} and $$ as a literal dollar.
    """
    @staticmethod
    def interpolate(template: str, context: Dict[str, str], strict: bool = True) -> str:
        """
        Interpolates environment variables in the template string using the provided context.

        :param template: The string containing ${VAR} placeholders.
        :param context: The environment variables context.
        :param strict: Raise on unset variables instead of substituting an empty string.
        :return: The interpolated string.
        :raises KeyError: If strict and a variable is unset with no default.
        """
        def replace(match):
            if match.group(1):
                return '$'
            var_name, modifier, alt_value = match.group(2), match.group(3), match.group(4)
            value = context.get(var_name)

            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if value is not None:
                return value
            if strict:
                raise KeyError(var_name)
            logger.warning("Variable %s is not set, substituting an empty string", var_name)
            return ''

        return _PATTERN.sub(replace, template)

    @staticmethod
    def missing_variables(template: str, context: Dict[str, str]) -> List[str]:
        """
        Lists the variables a template needs that the context does not define.

        :param template: The string containing ${VAR} placeholders.
        :param context: The environment variables context.
        :return: Missing variable names in order of first appearance.
        """
        missing = []
        for match in _PATTERN.finditer(template):
            name = match.group(2)
            if name and match.group(3) is None and name not in context and name not in missing:
                missing.append(name)
        return missing
