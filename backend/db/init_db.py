from .session import Base, engine
from . import models  # noqa: F401  registers tables on Base.metadata


def init_db():
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
