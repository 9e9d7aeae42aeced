"""Nix environment detection for the ``nix`` commands.

Detection never raises for a missing ``nix`` or ``git`` binary; it reports the
absence in ``NixEnvironment`` so commands can answer with a help message.
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

_PROJECT_MARKERS: Tuple[Tuple[str, str], ...] = (
    ("package.json", "Node.js"),
    ("requirements.txt", "Python"),
    ("pyproject.toml", "Python"),
    ("Cargo.toml", "Rust"),
    ("go.mod", "Go"),
    ("pom.xml", "Java"),
    ("build.gradle", "Java"),
    ("Gemfile", "Ruby"),
    ("composer.json", "PHP"),
)

NIX_INSTALL_HINT = """Nix is not installed or not on PATH.

Install Nix (Determinate Systems installer):
  curl --proto '=https' --tlsv1.2 -sSf -L https://install.determinate.systems/nix | sh -s -- install

Or the official installer:
  sh <(curl -L https://nixos.org/nix/install) --daemon

Restart your shell afterwards and try again."""

NO_FLAKE_HINT = """No flake.nix in the current directory.

Generate one for this project:
  vibe-relay nix init"""

UNTRACKED_FLAKE_HINT = """flake.nix is not tracked by git.

Nix flakes only see files tracked by git. Run:
  git add flake.nix
  git add flake.lock  # if present

and try again."""


@dataclass
class NixEnvironment:
    """Snapshot of the local Nix setup for one project directory."""

    has_nix: bool = False
    has_flake: bool = False
    nix_version: Optional[str] = None
    project_type: Optional[str] = None
    has_git: bool = False
    flake_tracked: bool = False
    lock_tracked: bool = False

    def summary_lines(self) -> List[str]:
        return [
            f"- Nix installed: {self.has_nix}",
            f"- Nix version: {self.nix_version or 'unknown'}",
            f"- flake.nix present: {self.has_flake}",
            f"- Project type: {self.project_type or 'unknown'}",
        ]


def _run(args: List[str], cwd: Path) -> Optional[subprocess.CompletedProcess]:
    try:
        return subprocess.run(args, cwd=cwd, capture_output=True, text=True, timeout=30)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("Command %s failed: %s", " ".join(args), exc)
        return None


def detect_project_type(path: Path) -> str:
    for marker, project_type in _PROJECT_MARKERS:
        if (path / marker).exists():
            return project_type
    return "Generic"


def _git_tracked(path: Path, filename: str) -> bool:
    result = _run(["git", "ls-files", filename], path)
    return bool(result and result.returncode == 0 and result.stdout.strip())


def detect_environment(path: Optional[Path] = None) -> NixEnvironment:
    """Inspect ``path`` (default: cwd) for nix, a flake and its git status."""
    root = Path(path) if path is not None else Path.cwd()
    env = NixEnvironment()

    if shutil.which("nix"):
        env.has_nix = True
        version = _run(["nix", "--version"], root)
        if version is not None and version.returncode == 0:
            env.nix_version = version.stdout.strip() or None

    env.has_flake = (root / "flake.nix").exists()
    env.project_type = detect_project_type(root)
    if shutil.which("git"):
        git_dir = _run(["git", "rev-parse", "--git-dir"], root)
        if git_dir is not None and git_dir.returncode == 0:
            env.has_git = True
            if env.has_flake:
                env.flake_tracked = _git_tracked(root, "flake.nix")
                env.lock_tracked = _git_tracked(root, "flake.lock")

    return env


def read_flake(path: Optional[Path] = None) -> str:
    root = Path(path) if path is not None else Path.cwd()
    return (root / "flake.nix").read_text(encoding="utf-8")


def write_flake(content: str, path: Optional[Path] = None) -> Path:
    root = Path(path) if path is not None else Path.cwd()
    target = root / "flake.nix"
    target.write_text(content if content.endswith("\n") else content + "\n", encoding="utf-8")
    return target


def list_directory(path: Optional[Path] = None, limit: int = 50) -> List[str]:
    """Return up to ``limit`` sorted entry names in ``path``, directories marked with "/"."""
    root = Path(path) if path is not None else Path.cwd()
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", root, exc)
        return []
    return [f"{p.name}/" if p.is_dir() else p.name for p in entries[:limit]]


def flake_check(path: Optional[Path] = None) -> Tuple[bool, str]:
    """Run ``nix flake check --no-build`` and return (ok, combined output)."""
    root = Path(path) if path is not None else Path.cwd()
    result = _run(["nix", "flake", "check", "--no-build", str(root)], root)
    if result is None:
        return False, "nix flake check could not be run"
    output = (result.stderr or "") + (result.stdout or "")
    return result.returncode == 0, output.strip()


def find_issues(env: NixEnvironment, path: Optional[Path] = None) -> List[str]:
    """Return the problems a generic health check finds, running ``nix flake check`` when possible."""
    issues: List[str] = []
    if not env.has_nix:
        issues.append("Nix is not installed")
    if not env.has_flake:
        issues.append("No flake.nix in the current directory")
    elif env.has_git and not env.flake_tracked:
        issues.append("flake.nix is not tracked by git")
    if env.has_nix and env.has_flake:
        ok, output = flake_check(path)
        if not ok:
            first_line = output.splitlines()[0] if output else "no output"
            issues.append(f"nix flake check failed: {first_line}")
    return issues


def help_message(env: NixEnvironment) -> str:
    """Return the blocking-problem message for ``env``, or "" when usable."""
    if not env.has_nix:
        return NIX_INSTALL_HINT
    if not env.has_flake:
        return NO_FLAKE_HINT
    if env.has_git and not env.flake_tracked:
        return UNTRACKED_FLAKE_HINT
    return ""


def _fenced(body: str, lang: str = "") -> str:
    return f"```{lang}\n{body}\n```"


def build_explain_prompt(flake: str, query: str = "") -> str:
    """Prompt asking for an explanation of the flake, or of one part of it."""
    if query.strip():
        return (
            f'As a Nix flakes expert, explain the part of this flake.nix about "{query.strip()}":\n\n'
            f"{_fenced(flake, 'nix')}\n\n"
            "Cover:\n"
            "1. What this part does and why it is there\n"
            "2. The meaning of each parameter\n"
            "3. How to modify or customize it\n"
            "4. Relevant best practices\n\n"
            "Keep the explanation accessible to newcomers."
        )
    return (
        "As a Nix flakes expert, explain this flake.nix section by section:\n\n"
        f"{_fenced(flake, 'nix')}\n\n"
        "Cover:\n"
        "1. Overall structure and design\n"
        "2. inputs: what each dependency provides\n"
        "3. outputs: the purpose of each output\n"
        "4. The key configuration options\n"
        "5. How to modify and extend it"
    )


def build_analyze_prompt(flake: str, env: NixEnvironment) -> str:
    project_type = env.project_type or "Generic"
    return (
        f"As a Nix flakes expert, analyze this flake.nix for a {project_type} project.\n\n"
        f"{_fenced(flake, 'nix')}\n\n"
        "Provide:\n"
        "1. Overview: purpose and structure of the flake\n"
        "2. Dependencies: every external input\n"
        "3. Outputs: packages, dev shells and apps it provides\n"
        "4. Best practices: where it follows or departs from them\n"
        "5. Potential problems\n"
        "6. Concrete, actionable improvements"
    )


def build_fix_prompt(
    problem: str,
    env: NixEnvironment,
    flake: str = "",
    error_details: str = "",
) -> str:
    """Prompt asking for a diagnosis and a fixed configuration."""
    sections = [
        "As a Nix expert, help fix the following problem.",
        f"Problem: {problem}",
        "Environment:\n" + "\n".join(env.summary_lines()),
    ]
    if flake:
        sections.append("Current flake.nix:\n" + _fenced(flake, "nix"))
    if error_details:
        sections.append("Error details:\n" + _fenced(error_details))
    sections.append(
        "Provide:\n"
        "1. Diagnosis of the root cause\n"
        "2. Step-by-step fix\n"
        "3. The complete corrected flake.nix if it needs changes\n"
        "4. Commands to verify the fix\n"
        "5. How to avoid the problem in future\n\n"
        "Give code that can be used as is. Call out anything that needs manual work."
    )
    return "\n\n".join(sections)


ASSIST_USAGE = """Describe the Nix task you need help with, for example:
  vibe-relay nix assist "fix my build error"
  vibe-relay nix assist "add Python and PostgreSQL to the dev shell"
  vibe-relay nix assist "resolve a dependency conflict"
  vibe-relay nix assist "set up CI for this flake\""""

FLAKE_EXISTS_MESSAGE = """flake.nix already exists in the current directory.

Review it with 'vibe-relay nix analyze' or get improvements with
'vibe-relay nix suggest'. To regenerate it, move the existing file away first."""


def build_assist_prompt(
    query: str,
    env: NixEnvironment,
    flake: str = "",
    files: Sequence[str] = (),
    cwd: Optional[Path] = None,
) -> str:
    """Prompt for a free-form Nix request, with whatever context is at hand."""
    context = ["Environment:"] + env.summary_lines()
    context.append(f"- Working directory: {cwd if cwd is not None else Path.cwd()}")
    sections = [
        "As a senior Nix expert and development advisor, help with the following request.",
        f"Request: {query.strip()}",
        "\n".join(context),
    ]
    if flake:
        sections.append("Current flake.nix:\n" + _fenced(flake, "nix"))
    if files:
        sections.append("Files in the working directory:\n" + "\n".join(files))
    sections.append(
        "Provide:\n"
        "1. Analysis: what is being asked and the current state\n"
        "2. Solution: concrete, executable steps\n"
        "3. Code: complete file contents for any configuration change\n"
        "4. Commands to run\n"
        "5. How to verify the result\n"
        "6. Follow-up best practices\n\n"
        "Prefer current Nix flakes practice and fit the answer to this project."
    )
    return "\n\n".join(sections)


def build_init_prompt(project_type: str) -> str:
    return (
        f"As a Nix flakes expert, write a complete, practical flake.nix for a {project_type} project.\n\n"
        "Requirements:\n"
        "1. Follow current Nix flakes best practices\n"
        f"2. A development shell suited to a {project_type} project\n"
        "3. A build output where one makes sense\n"
        "4. Multi-system support through flake-utils\n"
        "5. Explanatory comments\n"
        "6. Common development tools\n\n"
        "Return only the contents of flake.nix, without any other text."
    )


def clean_flake_content(text: str) -> str:
    """Strip Markdown fences and any preamble before the flake's opening brace."""
    cleaned = re.sub(r"```[a-zA-Z]*\n?", "", text)
    start = cleaned.find("{")
    if start > 0:
        cleaned = cleaned[start:]
    return cleaned.strip()


def init_next_steps(env: NixEnvironment) -> List[str]:
    steps = [] if env.has_git else ["git init"]
    steps += [
        "git add flake.nix",
        'git commit -m "Add flake configuration"',
        "vibe-relay nix troubleshoot",
        "nix develop",
    ]
    return [f"{number}. {step}" for number, step in enumerate(steps, 1)]


def build_suggest_prompt(flake: str, env: NixEnvironment) -> str:
    project_type = env.project_type or "Generic"
    return (
        f"As a Nix flakes expert, suggest concrete improvements to this flake.nix for a {project_type} project.\n\n"
        f"{_fenced(flake, 'nix')}\n\n"
        "Focus on:\n"
        "1. Performance\n"
        "2. Security\n"
        "3. Developer experience\n"
        "4. Current best practices\n"
        "5. Specific code changes\n\n"
        "Make every suggestion directly actionable."
    )


def build_troubleshoot_prompt(problem: str, env: NixEnvironment, flake: str = "") -> str:
    sections = [
        "As a Nix expert, help diagnose the following problem.",
        f"Problem: {problem.strip()}",
        "Environment:\n" + "\n".join(env.summary_lines()),
    ]
    if flake:
        sections.append("flake.nix:\n" + _fenced(flake, "nix"))
    sections.append(
        "Provide:\n"
        "1. Likely causes\n"
        "2. Concrete steps to resolve it\n"
        "3. How to prevent it\n"
        "4. Links to relevant documentation"
    )
    return "\n\n".join(sections)
