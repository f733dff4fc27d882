"""
Parsers for .env files backing secrets and config maps.
"""
from typing import Dict


class EnvParser:
    """
    Parser for .env files in the format accepted by Kustomize generators.
    """
    @staticmethod
    def parse(env_path: str) -> Dict[str, str]:
        """
        Parses an .env file from a path.

        Args:
            env_path (str): Path to the .env file.

        Returns:
            Dict[str, str]: Variables in file order.
        """
        with open(env_path, 'r') as f:
            content = f.read()
        return EnvParser.parse_from_string(content)

    @staticmethod
    def parse_from_string(content: str) -> Dict[str, str]:
        """
        Parses environment variables from a string.
        Handles quotes, comments, an optional `export` prefix and escaped quotes.
        """
        env = {}
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            if key.startswith('export '):
                key = key[len('export '):].strip()
            if not key or any(c.isspace() for c in key):
                continue
            env[key] = EnvParser._unquote(value.strip())

        return env

    @staticmethod
    def _unquote(value: str) -> str:
        if value[:1] in ('"', "'"):
            quote = value[0]
            end = 1
            while True:
                end = value.find(quote, end)
                if end == -1:
                    # Unterminated, keep the raw text
                    return value
                if value[end - 1] != '\\':
                    break
                end += 1
            return value[1:end].replace(f'\\{quote}', quote)

        # Unquoted values end at an inline comment
        if ' #' in value:
            value = value.split(' #', 1)[0]
        return value.strip()
