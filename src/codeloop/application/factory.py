"""
Application Layer - Agent Factory

Dependency-injection factory that wires the core ReActLoopController and
TaskPlanner with infrastructure adapters based on YAML configuration
profiles (configs/{profile}.yaml).

Key Responsibilities:
- Load configuration profiles
- Instantiate the completion provider, workspace tools and validator
- Translate the `loop` and `planner` sections into core policy objects
"""

from pathlib import Path
from typing import Callable, Optional

import structlog
import yaml

from codeloop.core.domain.events import ProgressUpdate
from codeloop.core.domain.loop_controller import LoopConfig, ReActLoopController
from codeloop.core.domain.planner import TaskPlanner
from codeloop.core.interfaces.llm import CompletionProviderProtocol
from codeloop.infrastructure.tools.workspace import WorkspaceTools
from codeloop.infrastructure.validation.compilation_validator import CompilationValidator


class AgentFactory:
    """
    Factory for creating loop controllers and planners.

    An explicit llm_provider may be passed to the create_* methods to share
    one provider between components or to inject a test double.
    """

    def __init__(self, config_dir: str = "configs"):
        """
        Initialize AgentFactory with configuration directory.

        Args:
            config_dir: Path to directory containing profile YAML files
        """
        self.config_dir = Path(config_dir)
        self.logger = structlog.get_logger().bind(component="agent_factory")

    def create_controller(
        self,
        profile: str = "dev",
        work_dir: Optional[str] = None,
        progress_callback: Optional[Callable[[ProgressUpdate], None]] = None,
        llm_provider: Optional[CompletionProviderProtocol] = None,
    ) -> ReActLoopController:
        """
        Create a ReActLoopController for a profile.

        Args:
            profile: Configuration profile name
            work_dir: Override for the workspace root
            progress_callback: Optional listener for progress updates
            llm_provider: Optional provider overriding the configured one

        Returns:
            Controller wired with workspace tools and a compilation validator

        Raises:
            FileNotFoundError: If profile YAML not found
        """
        config = self._load_profile(profile)
        tools = self._create_tools(config, work_dir)
        validator = CompilationValidator(tools.build)
        loop_config = self._create_loop_config(config)

        self.logger.info(
            "creating_controller",
            profile=profile,
            workspace=str(tools.root),
            max_iterations=loop_config.max_iterations,
        )

        return ReActLoopController(
            llm_provider=llm_provider or self._create_llm_provider(config),
            tools=tools,
            validator=validator,
            workspace=tools.root,
            config=loop_config,
            progress_callback=progress_callback,
        )

    def create_planner(
        self,
        profile: str = "dev",
        llm_provider: Optional[CompletionProviderProtocol] = None,
    ) -> TaskPlanner:
        """Create a TaskPlanner for a profile."""
        config = self._load_profile(profile)
        planner_config = config.get("planner") or {}
        timeout = planner_config.get("timeout_seconds", TaskPlanner.DEFAULT_TIMEOUT_SECONDS)

        self.logger.info("creating_planner", profile=profile, timeout_seconds=timeout)
        return TaskPlanner(
            llm_provider=llm_provider or self._create_llm_provider(config),
            timeout_seconds=float(timeout),
        )

    def _load_profile(self, profile: str) -> dict:
        """
        Load configuration profile from YAML file.

        Args:
            profile: Profile name (e.g. dev)

        Returns:
            Configuration dictionary

        Raises:
            FileNotFoundError: If profile YAML not found
        """
        profile_path = self.config_dir / f"{profile}.yaml"

        if not profile_path.exists():
            self.logger.error(
                "profile_not_found",
                profile=profile,
                path=str(profile_path),
                hint="Ensure profile YAML exists in configs directory",
            )
            raise FileNotFoundError(f"Profile not found: {profile_path}")

        with open(profile_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        self.logger.debug("profile_loaded", profile=profile, config_keys=list(config.keys()))
        return config

    def _create_llm_provider(self, config: dict) -> CompletionProviderProtocol:
        from codeloop.infrastructure.llm.litellm_provider import LiteLLMProvider

        llm_config = config.get("llm") or {}
        config_path = Path(llm_config.get("config_path", "llm_config.yaml"))
        if not config_path.is_absolute() and not config_path.exists():
            config_path = self.config_dir / config_path

        return LiteLLMProvider(config_path=str(config_path))

    def _create_tools(self, config: dict, work_dir: Optional[str]) -> WorkspaceTools:
        workspace_config = config.get("workspace") or {}
        root = work_dir or workspace_config.get("root", ".")

        return WorkspaceTools(
            root=root,
            build_commands=workspace_config.get("build_commands"),
            git_timeout_seconds=workspace_config.get("git_timeout_seconds", 30),
            build_timeout_seconds=workspace_config.get("build_timeout_seconds", 300),
            backup=workspace_config.get("backup", True),
        )

    def _create_loop_config(self, config: dict) -> LoopConfig:
        loop_config = config.get("loop") or {}
        run_timeout = loop_config.get("run_timeout_seconds")

        return LoopConfig(
            max_iterations=int(loop_config.get("max_iterations", ReActLoopController.MAX_ITERATIONS)),
            think_timeout_seconds=float(
                loop_config.get("think_timeout_seconds", ReActLoopController.THINK_TIMEOUT_SECONDS)
            ),
            run_timeout_seconds=float(run_timeout) if run_timeout is not None else None,
        )
