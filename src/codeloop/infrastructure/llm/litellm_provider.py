"""
LiteLLM Completion Provider

Implements CompletionProviderProtocol on top of LiteLLM. ProviderSettings
holds what the provider reads from its YAML file (model aliases,
per-model parameters, retry policy); reload_config() swaps in a fresh copy.
"""

import asyncio
import os
import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import litellm
import structlog
import yaml

from codeloop.core.domain.errors import CompletionError

ALLOWED_PARAMS = ("temperature", "top_p", "max_tokens", "frequency_penalty", "presence_penalty")


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    timeout: int = 30
    retry_on_errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProviderSettings:
    """
    Provider settings decoded from YAML.

    Attributes:
        default_alias: Alias used when a call names no model
        aliases: Alias -> LiteLLM model name ("models" section)
        params_by_model: Model name or prefix -> call parameters
        fallback_params: Parameters for models without an entry
        retry: Retry policy for failed completions
        api_key_env: Environment variable expected to hold the API key
        log_token_usage: Log token counts of successful completions
    """

    default_alias: str
    aliases: Dict[str, str]
    params_by_model: Dict[str, Dict[str, Any]]
    fallback_params: Dict[str, Any]
    retry: RetryPolicy
    api_key_env: str = "OPENAI_API_KEY"
    log_token_usage: bool = True

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ProviderSettings":
        """
        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not a mapping or defines no models
        """
        config_file = Path(path)
        if not config_file.exists():
            raise FileNotFoundError(f"LLM config not found: {path}")

        config = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if not isinstance(config, dict):
            raise ValueError(f"Config file is empty or invalid: {path}")

        aliases = config.get("models") or {}
        if not aliases:
            raise ValueError("Config must define at least one model in 'models' section")

        retry_keys = {f.name for f in fields(RetryPolicy)}
        retry_config = config.get("retry_policy") or {}
        openai_config = (config.get("providers") or {}).get("openai") or {}

        return cls(
            default_alias=config.get("default_model", "main"),
            aliases=dict(aliases),
            params_by_model=dict(config.get("model_params") or {}),
            fallback_params=dict(config.get("default_params") or {}),
            retry=RetryPolicy(**{k: v for k, v in retry_config.items() if k in retry_keys}),
            api_key_env=openai_config.get("api_key_env", "OPENAI_API_KEY"),
            log_token_usage=bool((config.get("logging") or {}).get("log_token_usage", True)),
        )

    def model_for(self, alias: Optional[str]) -> str:
        """Resolve an alias; unknown aliases are LiteLLM model names already."""
        alias = alias or self.default_alias
        return self.aliases.get(alias, alias)

    def params_for(self, model: str) -> Dict[str, Any]:
        """Exact model entry, else the longest matching prefix, else the fallback."""
        params = self.params_by_model.get(model)
        if params is None:
            prefixes = [key for key in self.params_by_model if model.startswith(key)]
            params = self.params_by_model[max(prefixes, key=len)] if prefixes else self.fallback_params
        return dict(params)


class LiteLLMProvider:
    """
    Completion provider backed by litellm.acompletion.

    Model aliases ("main", "fast") resolve through the `models` section of
    the config; unknown aliases are passed to LiteLLM unchanged.
    """

    def __init__(self, config_path: str = "configs/llm_config.yaml"):
        """
        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        self.config_path = config_path
        self.logger = structlog.get_logger().bind(component="litellm_provider")
        self.settings = ProviderSettings.from_yaml(config_path)
        self._warn_if_key_missing()

        self.logger.info(
            "llm_provider_initialized",
            default_model=self.settings.default_alias,
            model_aliases=list(self.settings.aliases),
        )

    def reload_config(self, config_path: str | None = None) -> None:
        """Re-read the configuration, e.g. after settings changed."""
        if config_path is not None:
            self.config_path = config_path
        self.settings = ProviderSettings.from_yaml(self.config_path)
        self._warn_if_key_missing()
        self.logger.info("llm_config_reloaded", config_path=self.config_path)

    def _warn_if_key_missing(self) -> None:
        if not os.getenv(self.settings.api_key_env):
            self.logger.warning(
                "api_key_missing",
                env_var=self.settings.api_key_env,
                hint="Set environment variable for API access",
            )

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        retry = self.settings.retry
        if attempt >= retry.max_attempts - 1:
            return False
        error_type = type(error).__name__
        return any(marker in error_type or marker in str(error) for marker in retry.retry_on_errors)

    @staticmethod
    def _token_stats(response: Any) -> Dict[str, Any]:
        usage = getattr(response, "usage", None) or {}
        if isinstance(usage, dict):
            return usage
        return {
            "total_tokens": getattr(usage, "total_tokens", 0),
            "prompt_tokens": getattr(usage, "prompt_tokens", 0),
            "completion_tokens": getattr(usage, "completion_tokens", 0),
        }

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Perform LLM completion with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model alias or None (uses default)
            **kwargs: Additional parameters (temperature, max_tokens, etc.)

        Returns:
            Dict with success, model and either content/usage/latency_ms
            or error/error_type
        """
        actual_model = self.settings.model_for(model)
        merged_params = {**self.settings.params_for(actual_model), **kwargs}
        call_params = {k: v for k, v in merged_params.items() if k in ALLOWED_PARAMS}

        attempt = 0
        while True:
            started = time.time()
            self.logger.debug(
                "llm_completion_started",
                model=actual_model,
                attempt=attempt + 1,
                message_count=len(messages),
            )
            try:
                response = await litellm.acompletion(
                    model=actual_model,
                    messages=messages,
                    timeout=self.settings.retry.timeout,
                    **call_params,
                )
            except Exception as e:
                if not self._should_retry(e, attempt):
                    self.logger.error(
                        "llm_completion_failed",
                        model=actual_model,
                        error_type=type(e).__name__,
                        error=str(e)[:200],
                        attempts=attempt + 1,
                    )
                    return {
                        "success": False,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "model": actual_model,
                    }

                backoff = self.settings.retry.backoff_multiplier**attempt
                self.logger.warning(
                    "llm_completion_retry",
                    model=actual_model,
                    error_type=type(e).__name__,
                    attempt=attempt + 1,
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
                attempt += 1
                continue

            tokens = self._token_stats(response)
            latency_ms = int((time.time() - started) * 1000)
            if self.settings.log_token_usage:
                self.logger.info(
                    "llm_completion_success",
                    model=actual_model,
                    tokens=tokens.get("total_tokens", 0),
                    latency_ms=latency_ms,
                )
            return {
                "success": True,
                "content": response.choices[0].message.content,
                "usage": tokens,
                "model": actual_model,
                "latency_ms": latency_ms,
            }

    async def chat(self, prompt: str) -> str:
        """
        Single-prompt completion used by the planner and the ReAct loop.

        Raises:
            CompletionError: If the completion failed or returned no content
        """
        result = await self.complete([{"role": "user", "content": prompt}])
        if not result.get("success"):
            raise CompletionError(result.get("error", "Completion failed"))

        content = result.get("content")
        if not content:
            raise CompletionError("Model returned an empty response")
        return content
