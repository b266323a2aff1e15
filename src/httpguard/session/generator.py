import uuid
from typing import Callable

# Produces a new session identifier
IdGenerator = Callable[[], str]


def uuid_generator() -> str:
    return str(uuid.uuid4())
