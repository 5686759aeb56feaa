from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import List, Optional, Dict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can come from:
    - docker-compose.yml environment section
    - .env file (for secrets like API keys)
    - System environment

    Variable names are the upper-cased field names:
    - OPENAI_API_KEY, LLM_MODEL (generation backend)
    - S2_API_KEY (Semantic Scholar)
    - KG_DATA_PATH, KG_SEED_PATH (graph snapshot)
    """

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # Generation backend (from .env)
    openai_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    llm_max_tokens: int = 1500
    llm_timeout_seconds: float = 60.0

    # Literature search
    s2_api_key: str = ""
    search_timeout_seconds: float = 15.0

    # Knowledge graph snapshot
    kg_data_path: str = "data/kg.json"
    kg_seed_path: Optional[str] = "data/demo_seed.json"
    kg_autosave: bool = True

    # Caste pacing (seconds). Start delays stagger the castes so reasoners
    # populate the graph before investigators and pricers start.
    reasoner_start_delay: float = 0.0
    reasoner_pacing: float = 2.0
    reasoner_idle: float = 10.0
    investigator_start_delay: float = 5.0
    investigator_pacing: float = 3.0
    investigator_idle: float = 15.0
    pricer_start_delay: float = 8.0
    pricer_pacing: float = 3.0
    pricer_idle: float = 12.0

    # Circuit breaker
    breaker_throttle_after: float = 3
    breaker_quarantine_after: float = 5
    breaker_kill_after: float = 8
    breaker_failure_score: float = 0.3
    throttle_delay_seconds: float = 5.0

    # Drift detector
    drift_history_size: int = 10
    drift_compare_window: int = 3

    # Hallucination checker
    hallucination_max_entities: int = 20

    # Investigator
    forensics_alert_threshold: int = 30
    anomaly_citation_threshold: int = 1000
    ring_min_length: int = 3

    # Discovery
    discovery_max_queries: int = 2
    discovery_results_per_query: int = 5
    discovery_sources: List[str] = ["semantic_scholar"]

    # Memory bounds
    log_capacity: int = 1000
    artifact_capacity: int = 5000

    # Token budgets per caste
    caste_token_limits: Dict[str, int] = {
        "philosopher": 150000,
        "guardian": 100000,
        "producer": 80000,
    }
    budget_warning_ratio: float = 0.8

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra env vars

    @field_validator('breaker_kill_after')
    @classmethod
    def check_threshold_order(cls, v, info):
        """Kill threshold must sit above quarantine, which sits above throttle"""
        data = info.data
        throttle = data.get('breaker_throttle_after', 3)
        quarantine = data.get('breaker_quarantine_after', 5)
        if not (throttle <= quarantine <= v):
            raise ValueError(
                f"breaker thresholds must be ordered: throttle={throttle} "
                f"<= quarantine={quarantine} <= kill={v}"
            )
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
