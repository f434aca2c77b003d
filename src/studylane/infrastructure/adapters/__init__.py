# Infrastructure Adapters Package
from .yaml_store import YamlStudyRepository

__all__ = ["YamlStudyRepository"]
