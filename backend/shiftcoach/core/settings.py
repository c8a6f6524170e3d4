"""
Configuration centralisée pour l'API ShiftCoach
Utilise pydantic-settings pour la gestion des variables d'environnement
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Configuration de l'application"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./shiftcoach.db",
        description="URL de la base de données (PostgreSQL en production)"
    )

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Origines autorisées pour CORS (configuré automatiquement selon ENVIRONMENT si vide)"
    )

    # Monitoring (Sentry)
    SENTRY_DSN: str = Field(
        default="",
        description="DSN Sentry pour le error tracking (vide = Sentry desactive)"
    )

    # Moteur de scoring
    DEFAULT_SLEEP_TARGET_HOURS: float = Field(
        default=7.5,
        description="Besoin de sommeil par nuit si le profil n'en définit pas"
    )
    DEFAULT_STEPS_GOAL: int = Field(default=10000)
    DEFAULT_ACTIVE_MINUTES_GOAL: int = Field(default=30)
    DEFAULT_TIMEZONE: str = Field(
        default="UTC",
        description="Fuseau utilisé pour dater les logs et calculer 'aujourd'hui'"
    )
    SCORE_HISTORY_DAYS: int = Field(
        default=14,
        description="Profondeur (jours) des données brutes chargées pour le scoring"
    )

    # Application
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(
        default="",
        description="Niveau de logging (auto-configuré selon ENVIRONMENT si vide)"
    )
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute")

    @model_validator(mode="after")
    def _configure_environment(self) -> "Settings":
        """Configure DEBUG et LOG_LEVEL selon ENVIRONMENT."""
        is_prod = self.ENVIRONMENT == "production"
        # En production, forcer DEBUG=False
        if is_prod:
            self.DEBUG = False
        # LOG_LEVEL par défaut selon ENVIRONMENT
        if not self.LOG_LEVEL:
            self.LOG_LEVEL = "WARNING" if is_prod else "INFO"
        return self

    @model_validator(mode="after")
    def _set_default_origins(self) -> "Settings":
        """Définit les origines CORS par défaut selon ENVIRONMENT si non configurées."""
        if not self.ALLOWED_ORIGINS:
            if self.ENVIRONMENT == "production":
                self.ALLOWED_ORIGINS = []
            else:
                self.ALLOWED_ORIGINS = [
                    "http://localhost:3000",
                    "http://127.0.0.1:3000",
                ]
        return self


@lru_cache()
def get_settings() -> Settings:
    """Récupère la configuration"""
    return Settings()
