from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/o3-mini"
    openrouter_model: str = ""  # optional override for every reasoning call
    llm_max_tokens: int = 8192

    # Search provider
    search_provider: str = "tavily"  # tavily | brave
    tavily_api_key: str = ""
    brave_api_key: str = ""
    search_fallback_to_tavily: bool = True
    search_timeout_seconds: float = 30.0
    max_finding_chars: int = 20000

    # Research loop
    research_default_max_depth: int = 7
    research_time_limit_seconds: float = 270.0  # 4.5 minutes
    research_max_failed_attempts: int = 3
    research_results_per_search: int = 5
    research_min_iterations_cap: int = 3
    research_min_iteration_time_floor_seconds: float = 60.0
    intermediate_synthesis_interval: int = 3
    intermediate_synthesis_min_findings: int = 10
    keyword_fallback_policy: str = "off_root"  # off_root | always | never

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
