"""Resolution of credential references (Vault, AWS Secrets Manager, env)."""

import json
import logging
import os
from typing import Optional

# Both backends are optional extras
try:
    import hvac
    HAS_VAULT = True
except ImportError:
    HAS_VAULT = False

try:
    import boto3
    HAS_AWS = True
except ImportError:
    HAS_AWS = False

logger = logging.getLogger("permsync.secrets")

REFERENCE_PREFIXES = ("vault://", "aws://", "env://")


class SecretsManager:
    """Looks up the application secret and partner refresh token by reference."""

    def __init__(self):
        self.vault_client = None
        self.aws_client = None
        self._connect_vault()
        self._connect_aws()

    def _connect_vault(self):
        if not HAS_VAULT:
            return

        vault_url = os.getenv("VAULT_ADDR")
        vault_token = os.getenv("VAULT_TOKEN")
        if not (vault_url and vault_token):
            return

        try:
            client = hvac.Client(url=vault_url, token=vault_token)
            if client.is_authenticated():
                self.vault_client = client
        except Exception as e:
            logger.warning(f"Vault unavailable at {vault_url}: {e}")

    def _connect_aws(self):
        if not HAS_AWS:
            return

        region = os.getenv("AWS_REGION")
        if not region:
            return

        try:
            self.aws_client = boto3.client("secretsmanager", region_name=region)
        except Exception as e:
            logger.warning(f"AWS Secrets Manager unavailable in {region}: {e}")

    def get_secret(self, secret_ref: str) -> Optional[str]:
        """
        Resolve a secret reference.

        Supported forms:
        - vault://mount/path/key
        - aws://secret-name/key
        - env://VAR_NAME
        - anything else is returned as-is

        Returns:
            The secret value, or None when the reference cannot be resolved
        """
        if not secret_ref:
            return None

        if not secret_ref.startswith(REFERENCE_PREFIXES):
            return secret_ref

        if secret_ref.startswith("vault://"):
            return self._read_vault(secret_ref[len("vault://"):])

        if secret_ref.startswith("aws://"):
            return self._read_aws(secret_ref[len("aws://"):])

        return os.getenv(secret_ref[len("env://"):])

    def _read_vault(self, path: str) -> Optional[str]:
        if not self.vault_client:
            return None

        secret_path, _, key = path.rpartition("/")
        if not secret_path or not key:
            return None

        try:
            response = self.vault_client.secrets.kv.v2.read_secret_version(path=secret_path)
        except Exception as e:
            logger.warning(f"Failed to read Vault secret {secret_path}: {e}")
            return None
        return response.get("data", {}).get("data", {}).get(key)

    def _read_aws(self, path: str) -> Optional[str]:
        if not self.aws_client:
            return None

        secret_name, _, key = path.partition("/")
        if not secret_name or not key:
            return None

        try:
            response = self.aws_client.get_secret_value(SecretId=secret_name)
        except Exception as e:
            logger.warning(f"Failed to read AWS secret {secret_name}: {e}")
            return None
        return json.loads(response.get("SecretString") or "{}").get(key)


secrets_manager = SecretsManager()


def get_secret(secret_ref: str, fallback: Optional[str] = None) -> Optional[str]:
    """Resolve a secret reference, returning ``fallback`` when it is unresolved."""
    value = secrets_manager.get_secret(secret_ref)
    return value if value is not None else fallback
