"""
Configuration de la base de données avec SQLModel
"""
from sqlmodel import create_engine, SQLModel
from shiftcoach.core.settings import get_settings

settings = get_settings()

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

# Créer l'engine de base de données
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    connect_args=_connect_args,
)


def create_db_and_tables():
    """Créer toutes les tables de la base de données"""
    import shiftcoach.domain.entities  # noqa: F401  (enregistre les tables dans les métadonnées)
    SQLModel.metadata.create_all(engine)

