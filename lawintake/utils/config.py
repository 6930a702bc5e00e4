"""Configuration management for the divorce intake system."""

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from lawintake.utils.errors import ConfigurationError

load_dotenv()

SESSION_BACKENDS = ("memory", "cms")
MISSING_TOKEN_POLICIES = ("keep", "remove", "error")


DEFAULTS: Dict[str, Any] = {
    "app": {
        "title": "אשף גירושין",
        "base_url": "http://localhost:8000",
        "wizard_url": "http://localhost:8501",
        "cron_secret": "",
        "lawyer_name": "",
    },
    "cms": {
        "project_id": "",
        "dataset": "production",
        "api_version": "2024-01-01",
        "token": "",
        "timeout": 15,
    },
    "storage": {
        "region": "us-east-1",
        "bucket": "",
        "root_prefix": "submissions",
        "lawyer_signature_key": "",
    },
    "email": {
        "host": "",
        "port": 587,
        "user": "",
        "password": "",
        "from_address": "",
        "office_address": "",
        "use_tls": True,
        "timeout": 20,
    },
    "text_generation": {
        "enabled": False,
        "model_id": "amazon.nova-pro-v1:0",
        "api_key": "",
        "timeout": 60,
        "max_retries": 3,
        "min_length": 50,
    },
    "sessions": {
        "backend": "memory",
        "id_prefix": "DW",
        "expiry_days": 30,
        "reminder_interval_hours": 24,
        "max_reminders": 3,
    },
    "documents": {
        "templates_dir": "document_templates",
        "form4_dir": "assets/form4",
        "tmp_dir": "tmp",
        "font_path": "",
        "missing_token_policy": "keep",
    },
    "submission": {
        "fail_fast": False,
        "price_per_claim": 3900,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "file": "",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return bool(default)
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _choice(setting: str, value: str, allowed) -> str:
    if value not in allowed:
        raise ConfigurationError.invalid(setting, value, allowed)
    return value


@dataclass
class AppConfig:
    """Public site configuration."""
    title: str
    base_url: str
    wizard_url: str
    cron_secret: str
    lawyer_name: str


@dataclass
class CMSConfig:
    """Headless CMS (Sanity) configuration."""
    project_id: str
    dataset: str
    api_version: str
    token: str
    timeout: int

    @property
    def is_configured(self) -> bool:
        return bool(self.project_id)


@dataclass
class StorageConfig:
    """S3 storage for submitted packages."""
    region: str
    bucket: str
    root_prefix: str
    lawyer_signature_key: str


@dataclass
class EmailConfig:
    """SMTP transport configuration."""
    host: str
    port: int
    user: str
    password: str
    from_address: str
    office_address: str
    use_tls: bool
    timeout: int

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass
class TextGenerationConfig:
    """Bedrock legal-language rewrite configuration."""
    enabled: bool
    model_id: str
    api_key: str
    timeout: int
    max_retries: int
    min_length: int


@dataclass
class SessionConfig:
    """Recovery session lifecycle settings."""
    backend: str
    id_prefix: str
    expiry_days: int
    reminder_interval_hours: int
    max_reminders: int


@dataclass
class DocumentConfig:
    """Document generation paths and template policy."""
    templates_dir: str
    form4_dir: str
    tmp_dir: str
    font_path: str
    missing_token_policy: str


@dataclass
class SubmissionConfig:
    """Submission pipeline settings."""
    fail_fast: bool
    price_per_claim: int


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    format: str
    file: str


@dataclass
class Config:
    """Main configuration class."""
    app: AppConfig
    cms: CMSConfig
    storage: StorageConfig
    email: EmailConfig
    text_generation: TextGenerationConfig
    sessions: SessionConfig
    documents: DocumentConfig
    submission: SubmissionConfig
    logging: LoggingConfig
    source: Optional[str] = field(default=None)

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        A missing file falls back to the built-in defaults. Environment
        variables override config file values:
        - BASE_URL, WIZARD_URL, CRON_SECRET, LAWYER_NAME
        - SANITY_PROJECT_ID, SANITY_DATASET, SANITY_API_VERSION, SANITY_API_TOKEN
        - AWS_REGION, STORAGE_BUCKET, STORAGE_ROOT_PREFIX, LAWYER_SIGNATURE_KEY
        - EMAIL_HOST, EMAIL_PORT, EMAIL_USER, EMAIL_PASSWORD, EMAIL_FROM, EMAIL_TO
        - TEXT_GENERATION_ENABLED, BEDROCK_MODEL_ID, BEDROCK_API_KEY / AWS_BEARER_TOKEN_BEDROCK
        - SESSION_BACKEND
        - TEMPLATES_DIR, FORM4_DIR, TMP_DIR, MISSING_TOKEN_POLICY
        - SUBMISSION_FAIL_FAST
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings
        """
        file_data: Dict[str, Any] = {}
        source = None
        if config_path and Path(config_path).exists():
            with open(config_path, "r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            source = config_path

        data = _merge(DEFAULTS, file_data)

        app_data = data["app"]
        app_config = AppConfig(
            title=app_data["title"],
            base_url=os.getenv("BASE_URL", app_data["base_url"]).rstrip("/"),
            wizard_url=os.getenv("WIZARD_URL", app_data["wizard_url"]).rstrip("/"),
            cron_secret=os.getenv("CRON_SECRET", app_data["cron_secret"]) or "",
            lawyer_name=os.getenv("LAWYER_NAME", app_data["lawyer_name"]) or "",
        )

        cms_data = data["cms"]
        cms_config = CMSConfig(
            project_id=os.getenv("SANITY_PROJECT_ID", cms_data["project_id"]) or "",
            dataset=os.getenv("SANITY_DATASET", cms_data["dataset"]),
            api_version=os.getenv("SANITY_API_VERSION", cms_data["api_version"]),
            token=os.getenv("SANITY_API_TOKEN", cms_data["token"]) or "",
            timeout=int(cms_data["timeout"]),
        )

        storage_data = data["storage"]
        storage_config = StorageConfig(
            region=os.getenv("AWS_REGION", storage_data["region"]),
            bucket=os.getenv("STORAGE_BUCKET", storage_data["bucket"]) or "",
            root_prefix=os.getenv("STORAGE_ROOT_PREFIX", storage_data["root_prefix"]).strip("/"),
            lawyer_signature_key=os.getenv(
                "LAWYER_SIGNATURE_KEY", storage_data["lawyer_signature_key"]
            ) or "",
        )

        email_data = data["email"]
        email_config = EmailConfig(
            host=os.getenv("EMAIL_HOST", email_data["host"]) or "",
            port=int(os.getenv("EMAIL_PORT", email_data["port"])),
            user=os.getenv("EMAIL_USER", email_data["user"]) or "",
            password=os.getenv("EMAIL_PASSWORD", email_data["password"]) or "",
            from_address=os.getenv("EMAIL_FROM", email_data["from_address"]) or "",
            office_address=os.getenv("EMAIL_TO", email_data["office_address"]) or "",
            use_tls=bool(email_data["use_tls"]),
            timeout=int(email_data["timeout"]),
        )

        tg_data = data["text_generation"]
        text_generation_config = TextGenerationConfig(
            enabled=_env_bool("TEXT_GENERATION_ENABLED", tg_data["enabled"]),
            model_id=os.getenv("BEDROCK_MODEL_ID", tg_data["model_id"]),
            api_key=(
                os.getenv("BEDROCK_API_KEY")
                or os.getenv("AWS_BEARER_TOKEN_BEDROCK")
                or tg_data["api_key"]
                or ""
            ),
            timeout=int(tg_data["timeout"]),
            max_retries=int(tg_data["max_retries"]),
            min_length=int(tg_data["min_length"]),
        )

        sessions_data = data["sessions"]
        session_config = SessionConfig(
            backend=_choice(
                "sessions.backend", os.getenv("SESSION_BACKEND", sessions_data["backend"]), SESSION_BACKENDS
            ),
            id_prefix=sessions_data["id_prefix"],
            expiry_days=int(sessions_data["expiry_days"]),
            reminder_interval_hours=int(sessions_data["reminder_interval_hours"]),
            max_reminders=int(sessions_data["max_reminders"]),
        )

        docs_data = data["documents"]
        document_config = DocumentConfig(
            templates_dir=os.getenv("TEMPLATES_DIR", docs_data["templates_dir"]),
            form4_dir=os.getenv("FORM4_DIR", docs_data["form4_dir"]),
            tmp_dir=os.getenv("TMP_DIR", docs_data["tmp_dir"]),
            font_path=os.getenv("DOCUMENT_FONT_PATH", docs_data["font_path"]) or "",
            missing_token_policy=_choice(
                "documents.missing_token_policy",
                os.getenv("MISSING_TOKEN_POLICY", docs_data["missing_token_policy"]),
                MISSING_TOKEN_POLICIES,
            ),
        )

        submission_data = data["submission"]
        submission_config = SubmissionConfig(
            fail_fast=_env_bool("SUBMISSION_FAIL_FAST", submission_data["fail_fast"]),
            price_per_claim=int(submission_data["price_per_claim"]),
        )

        logging_data = data["logging"]
        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", logging_data["level"]),
            format=logging_data["format"],
            file=logging_data["file"] or "",
        )

        return cls(
            app=app_config,
            cms=cms_config,
            storage=storage_config,
            email=email_config,
            text_generation=text_generation_config,
            sessions=session_config,
            documents=document_config,
            submission=submission_config,
            logging=logging_config,
            source=source,
        )
