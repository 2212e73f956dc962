from api.credentials import CredentialBroker
from api.external_client import ExternalClient

__all__ = ["CredentialBroker", "ExternalClient"]
