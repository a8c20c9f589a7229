"""
Secrets resolved from the local host.

Sources:
    - command: run a command and use its combined output
    - path: read a file; environment variables in the path are expanded
    - env: read an environment variable
    - value: the value itself

Commands are split with shlex and run without a shell.
"""

import logging
import os
import shlex
import subprocess
from pathlib import Path

from claimstore.errors import SecretResolutionError
from claimstore.secrets.base import SecretStore

logger = logging.getLogger(__name__)

SOURCE_COMMAND = "command"
SOURCE_PATH = "path"
SOURCE_ENV = "env"
SOURCE_VALUE = "value"

# When several sources are given, the first present one wins
SOURCE_PRECEDENCE = (SOURCE_COMMAND, SOURCE_PATH, SOURCE_ENV, SOURCE_VALUE)


class HostSecretStore(SecretStore):
    """Resolves secrets from the environment, files and commands of this host."""

    def resolve(self, source: str, value: str) -> str:
        source = source.lower()
        if source == SOURCE_COMMAND:
            return self._run_command(value)
        if source == SOURCE_PATH:
            return self._read_path(value)
        if source == SOURCE_ENV:
            return self._read_env(value)
        if source == SOURCE_VALUE:
            return value
        raise SecretResolutionError(
            source=source,
            message=f"invalid secret source: {source}",
            suggestion=f"Use one of: {', '.join(SOURCE_PRECEDENCE)}",
        )

    def resolve_first(self, sources: dict[str, str]) -> str:
        """
        Resolve a secret given several candidate sources.

        Args:
            sources: Map of source kind to value, e.g. {"env": "DB_PASSWORD"}

        Raises:
            SecretResolutionError: If no known source is given, or the winning
                source cannot be resolved
        """
        normalized = {k.lower(): v for k, v in sources.items()}
        for source in SOURCE_PRECEDENCE:
            if source in normalized:
                return self.resolve(source, normalized[source])
        raise SecretResolutionError(
            source=",".join(sorted(normalized)),
            message="no secret source given",
            suggestion=f"Use one of: {', '.join(SOURCE_PRECEDENCE)}",
        )

    def _run_command(self, command: str) -> str:
        try:
            cmd = shlex.split(command)
        except ValueError as e:
            raise SecretResolutionError(
                source=SOURCE_COMMAND,
                value=command,
                message=f"invalid secret command: {e}",
            ) from e
        if not cmd:
            raise SecretResolutionError(
                source=SOURCE_COMMAND,
                message="secret command is empty",
            )

        logger.debug("Resolving secret with command %s", cmd[0])
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                shell=False,
            )
        except OSError as e:
            raise SecretResolutionError(
                source=SOURCE_COMMAND,
                value=command,
                message=f"could not run secret command {cmd[0]}: {e}",
            ) from e

        output = result.stdout.decode("utf-8", errors="replace")
        if result.returncode != 0:
            raise SecretResolutionError(
                source=SOURCE_COMMAND,
                value=command,
                message=f"secret command {cmd[0]} exited with status {result.returncode}",
            )
        return output

    def _read_path(self, path: str) -> str:
        expanded = Path(os.path.expandvars(path))
        try:
            return expanded.read_text()
        except OSError as e:
            raise SecretResolutionError(
                source=SOURCE_PATH,
                value=path,
                message=f"could not read secret file {expanded}: {e.strerror or e}",
            ) from e

    def _read_env(self, name: str) -> str:
        try:
            return os.environ[name]
        except KeyError as e:
            raise SecretResolutionError(
                source=SOURCE_ENV,
                value=name,
                message=f"environment variable {name} is not defined",
            ) from e
