from enum import Enum


class SignerMode(str, Enum):
    NODE = "node"
    LOCAL_KEY = "local_key"
    IMPERSONATED = "impersonated"
