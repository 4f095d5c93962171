from models.application import Application
from models.builder_visit import BuilderVisit

__all__ = [
    "Application",
    "BuilderVisit",
]
