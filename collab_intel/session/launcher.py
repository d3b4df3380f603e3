"""
Session launcher — renders an agent's context bundle and hands it to the
external assistant program.

Two modes:

* pipe mode (``print_only``): the bundle goes to stdout, nothing is spawned;
* interactive mode: ``<launcher> [launcher_args] [auto-accept flag] <bundle>``
  is spawned and waited on, with the terminal title set to the agent name
  for the lifetime of the child.

A bundle too large for a single argument is written to a temporary file and
the child is given a short prompt naming that file instead.  While the child
runs it owns Ctrl-C; SIGTERM still stops the wait and tears the child down.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import sys
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, TextIO, Union

from ..auto_accept import AutoAcceptPolicy, resolve_auto_accept
from ..config import Config
from ..errors import LaunchFailed, LauncherMissing, MemorySourceUnreadable
from ..kb.parser import parse_knowledge_base
from ..kb.paths import AGENTS_DIRNAME, resolve_knowledge_base
from ..kb.registry import AgentProfile
from ..project_config import ProjectConfig, find_nearest_config
from .terminal import TerminalTitle, terminal_title

logger = logging.getLogger(__name__)

ENV_AGENT_NAME = "CI_AGENT_NAME"
ENV_AGENT_CONTEXT = "CI_AGENT_CONTEXT"
ENV_TOOLKIT_PATH = "CI_AGENT_TOOLKIT_PATH"
ENV_CONTEXT_TYPE = "CI_AGENT_CONTEXT_TYPE"

_TERMINATE_TIMEOUT = 5  # seconds before an interrupted child is killed

# Linux caps one argv string at MAX_ARG_STRLEN (128 KiB).
MAX_ARG_BYTES = 100_000


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


@contextmanager
def _child_owns_sigint() -> Iterator[None]:
    """Ignore SIGINT in this process and turn SIGTERM into an interrupt.

    The child shares the terminal's process group, so Ctrl-C reaches it
    directly.  Handlers can only be installed from the main thread; elsewhere
    this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous_int = signal.signal(signal.SIGINT, signal.SIG_IGN)
    previous_term = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT,
                      signal.SIG_DFL if previous_int is None else previous_int)
        signal.signal(signal.SIGTERM,
                      signal.SIG_DFL if previous_term is None else previous_term)


# ---------------------------------------------------------------------------
# Context bundle
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectMetadata:
    """Where the session is being started."""
    name: str
    root: Path
    config_path: Optional[Path] = None

    @classmethod
    def detect(cls, cwd: Optional[Path] = None,
               project_config: Optional[ProjectConfig] = None) -> "ProjectMetadata":
        """Use the project settings when present, else the working directory."""
        cwd = (cwd or Path.cwd()).resolve()
        if project_config is not None and project_config.root is not None:
            root = project_config.root
            return cls(
                name=project_config.project_name or root.name,
                root=root,
                config_path=project_config.path,
            )
        return cls(name=cwd.name, root=cwd)


@dataclass(frozen=True)
class SessionContext:
    """Everything the spawned session is told about itself."""
    agent_name: str
    description: str
    memory: str
    policy: AutoAcceptPolicy
    project: ProjectMetadata
    extra: Optional[str] = None
    kb_root: Optional[Path] = None

    @property
    def toolkit_path(self) -> Optional[Path]:
        if self.kb_root is None:
            return None
        return self.kb_root / AGENTS_DIRNAME / self.agent_name

    def render(self) -> str:
        """Plain-text bundle: memory, session facts, then any extra context."""
        facts = [f"- Agent: {self.agent_name}"]
        if self.description:
            facts.append(f"- Role: {self.description}")
        facts.append(f"- Project: {self.project.name}")
        facts.append(f"- Working directory: {self.project.root}")
        if self.kb_root is not None:
            facts.append(f"- Knowledge base: {self.kb_root}")
        facts.append(f"- Auto-accept: {self.policy}")

        parts = [self.memory.strip(), "# Session Context", "\n".join(facts)]
        if self.extra and self.extra.strip():
            parts += ["## Additional Context", self.extra.strip()]
        return "\n\n".join(p for p in parts if p) + "\n"


# ---------------------------------------------------------------------------
# Launcher
# ---------------------------------------------------------------------------

class SessionLauncher:
    """Spawns the assistant program for a validated agent profile.

    ``popen``, ``which`` and ``terminal`` are injectable so the process and
    the terminal can be replaced in tests.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        terminal: Optional[TerminalTitle] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        which: Callable[[str], Optional[str]] = shutil.which,
        stdout: Optional[TextIO] = None,
    ):
        self.config = config or Config()
        if terminal is None and self.config.SET_TITLE:
            terminal = TerminalTitle()
        self.terminal = terminal
        self.popen = popen
        self.which = which
        self.stdout = stdout if stdout is not None else sys.stdout

    # --- context -------------------------------------------------------

    @staticmethod
    def read_memory_override(path: Union[str, Path]) -> str:
        """Read an alternate memory file, replacing the registry memory."""
        path = Path(path).expanduser()
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
            raise MemorySourceUnreadable(path, reason) from exc

    def build_context(
        self,
        profile: AgentProfile,
        policy: AutoAcceptPolicy,
        extra: Optional[str] = None,
        memory_file: Optional[Union[str, Path]] = None,
        project: Optional[ProjectMetadata] = None,
        kb_root: Optional[Path] = None,
    ) -> SessionContext:
        memory = profile.memory
        if memory_file is not None:
            memory = self.read_memory_override(memory_file)
            logger.info("Memory for %s replaced by %s", profile.name, memory_file)
        return SessionContext(
            agent_name=profile.name,
            description=profile.description,
            memory=memory,
            policy=policy,
            project=project or ProjectMetadata.detect(),
            extra=extra,
            kb_root=kb_root,
        )

    # --- process -------------------------------------------------------

    def command_for(self, context: SessionContext, program: str,
                    bundle_arg: Optional[str] = None) -> list[str]:
        argv = [program, *self.config.LAUNCHER_ARGS]
        if context.policy.decision:
            argv.append(self.config.AUTO_ACCEPT_FLAG)
        argv.append(context.render() if bundle_arg is None else bundle_arg)
        return argv

    @staticmethod
    @contextmanager
    def bundle_argument(context: SessionContext) -> Iterator[str]:
        """Yield the final argv element carrying *context*.

        Small bundles are passed inline.  Larger ones are written to a
        temporary file that lives until the block exits, and the argument
        becomes a short instruction to read it.
        """
        bundle = context.render()
        if len(bundle.encode("utf-8")) <= MAX_ARG_BYTES:
            yield bundle
            return

        tmp = tempfile.NamedTemporaryFile(
            mode="w", suffix=".md", prefix=f"ci_{context.agent_name}_",
            delete=False, encoding="utf-8",
        )
        try:
            tmp.write(bundle)
            tmp.close()
            logger.info("Bundle for %s is %d bytes; delivered via %s",
                        context.agent_name, len(bundle), tmp.name)
            yield (f"Your session context as {context.agent_name} is in "
                   f"{tmp.name}. Read that file in full before doing "
                   f"anything else and follow it.")
        finally:
            try:
                os.unlink(tmp.name)
            except OSError:
                pass

    def child_env(self, context: SessionContext) -> dict[str, str]:
        env = dict(os.environ)
        env[ENV_AGENT_NAME] = context.agent_name
        env[ENV_AGENT_CONTEXT] = "true"
        if context.toolkit_path is not None:
            env[ENV_TOOLKIT_PATH] = str(context.toolkit_path)
        if context.extra:
            env[ENV_CONTEXT_TYPE] = context.extra
        return env

    def _locate_program(self) -> str:
        program = self.config.LAUNCHER
        found = self.which(program)
        if found is None:
            raise LauncherMissing(
                program,
                hint="Install it, set CI_LAUNCHER to another program, or use "
                     "--print and pipe the bundle yourself (ci load NAME --print | claude)",
            )
        return found

    def launch(
        self,
        profile: AgentProfile,
        policy: AutoAcceptPolicy,
        extra: Optional[str] = None,
        memory_file: Optional[Union[str, Path]] = None,
        project: Optional[ProjectMetadata] = None,
        print_only: bool = False,
        kb_root: Optional[Path] = None,
    ) -> int:
        """
        Run a session for *profile*.

        Returns
        -------
        int
            0 in pipe mode, otherwise the child's exit status.

        Raises
        ------
        MemorySourceUnreadable, LauncherMissing, LaunchFailed
        """
        context = self.build_context(profile, policy, extra, memory_file,
                                     project, kb_root)

        if print_only:
            self.stdout.write(context.render())
            self.stdout.flush()
            return 0

        program = self._locate_program()
        logger.info("Launching %s for agent %s (auto-accept %s)",
                    program, profile.name, policy)

        with self.bundle_argument(context) as bundle_arg, \
                terminal_title(self.terminal, profile.name):
            argv = self.command_for(context, program, bundle_arg)
            try:
                proc = self.popen(argv, env=self.child_env(context))
            except OSError as exc:
                raise LaunchFailed(self.config.LAUNCHER, str(exc)) from exc
            try:
                with _child_owns_sigint():
                    returncode = proc.wait()
            except KeyboardInterrupt:
                logger.info("Interrupted; terminating %s", program)
                proc.terminate()
                try:
                    proc.wait(timeout=_TERMINATE_TIMEOUT)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()
                raise

        logger.info("%s exited with status %s", program, returncode)
        return returncode


# ---------------------------------------------------------------------------
# One-call entry point
# ---------------------------------------------------------------------------

def load_agent(
    name: str,
    *,
    ci_path: Optional[str] = None,
    config: Optional[Config] = None,
    force: bool = False,
    extra: Optional[str] = None,
    memory_file: Optional[Union[str, Path]] = None,
    print_only: bool = False,
    cwd: Optional[Path] = None,
    command: str = "load",
    launcher: Optional[SessionLauncher] = None,
) -> int:
    """Resolve, parse, look up, merge policy and launch in one call.

    The agent lookup happens before anything is spawned, so an unknown name
    raises :class:`~collab_intel.errors.AgentNotFound` with no side effects.
    """
    config = config or Config()
    cwd = (cwd or Path.cwd()).resolve()

    project_config = find_nearest_config(cwd)
    location = resolve_knowledge_base(
        ci_path, cwd=cwd, extra_search_paths=config.SEARCH_PATHS)
    result = parse_knowledge_base(location)
    for diag in result.diagnostics:
        print(f"warning: {diag}", file=sys.stderr)
    profile = result.registry.require(name)

    policy = resolve_auto_accept(profile.name, force=force,
                                 project_config=project_config, command=command)
    launcher = launcher or SessionLauncher(config)
    return launcher.launch(
        profile,
        policy,
        extra=extra,
        memory_file=memory_file,
        project=ProjectMetadata.detect(cwd, project_config),
        print_only=print_only,
        kb_root=location.path,
    )
