import os
from dataclasses import dataclass
from typing import List
from urllib.parse import quote_plus

from mathquiz.engine.policy import INFER_FINAL_ANSWER_FROM_STEPS, METHOD_MARK_WEIGHT, ScoringPolicy

TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    mysql_host: str
    mysql_port: int
    mysql_user: str
    mysql_password: str
    mysql_database: str
    database_url: str
    grader_provider: str
    grader_base_url: str
    grader_model: str
    grader_api_key: str
    grader_gateway_url: str
    grader_timeout: float
    grader_max_tokens: int
    grader_temperature: float
    evaluation_timeout: float
    method_mark_weight: float
    infer_final_answer_from_steps: bool
    cors_origins: List[str]

    def scoring_policy(self) -> ScoringPolicy:
        return ScoringPolicy(
            method_mark_weight=self.method_mark_weight,
            infer_final_answer_from_steps=self.infer_final_answer_from_steps,
        )


def _build_database_url(
    mysql_host: str,
    mysql_port: int,
    mysql_user: str,
    mysql_password: str,
    mysql_database: str,
) -> str:
    password = quote_plus(mysql_password)
    return (
        "mysql+pymysql://"
        f"{mysql_user}:{password}@{mysql_host}:{mysql_port}/{mysql_database}"
        "?charset=utf8mb4"
    )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY


def _load_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "")
    if raw:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return ["http://localhost:5173", "http://127.0.0.1:5173"]


def load_settings() -> Settings:
    mysql_host = os.getenv("MYSQL_HOST", "localhost")
    mysql_port = int(os.getenv("MYSQL_PORT", "3306"))
    mysql_user = os.getenv("MYSQL_USER", "app_user")
    mysql_password = os.getenv("MYSQL_PASSWORD", "app_pass")
    mysql_database = os.getenv("MYSQL_DATABASE", "app_db")

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        database_url = _build_database_url(
            mysql_host=mysql_host,
            mysql_port=mysql_port,
            mysql_user=mysql_user,
            mysql_password=mysql_password,
            mysql_database=mysql_database,
        )

    method_mark_weight = float(os.getenv("METHOD_MARK_WEIGHT", str(METHOD_MARK_WEIGHT)))
    if not 0 <= method_mark_weight <= 1:
        raise ValueError("METHOD_MARK_WEIGHT must be between 0 and 1.")

    return Settings(
        mysql_host=mysql_host,
        mysql_port=mysql_port,
        mysql_user=mysql_user,
        mysql_password=mysql_password,
        mysql_database=mysql_database,
        database_url=database_url,
        grader_provider=os.getenv("GRADER_PROVIDER", "openai"),
        grader_base_url=os.getenv("GRADER_BASE_URL", "https://api.openai.com"),
        grader_model=os.getenv("GRADER_MODEL", "gpt-4o"),
        grader_api_key=os.getenv("GRADER_API_KEY", "") or os.getenv("OPENAI_API_KEY", ""),
        grader_gateway_url=os.getenv("GRADER_GATEWAY_URL", ""),
        grader_timeout=float(os.getenv("GRADER_TIMEOUT", "30")),
        grader_max_tokens=int(os.getenv("GRADER_MAX_TOKENS", "1500")),
        grader_temperature=float(os.getenv("GRADER_TEMPERATURE", "0.3")),
        evaluation_timeout=float(os.getenv("EVALUATION_TIMEOUT", "120")),
        method_mark_weight=method_mark_weight,
        infer_final_answer_from_steps=_env_flag("INFER_FINAL_ANSWER_FROM_STEPS", INFER_FINAL_ANSWER_FROM_STEPS),
        cors_origins=_load_cors_origins(),
    )
