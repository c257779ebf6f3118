from .cafes import CafesRepository
from . import models

__all__ = ["CafesRepository", "models"]
