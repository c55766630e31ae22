# lambda_layer/python/peering_common/errors.py
from botocore.exceptions import ClientError


class PeeringError(Exception):
    """Base class for every error raised by the peering handlers."""
    pass


class InvalidRequestError(ValueError):
    """Custom exception for malformed custom resource requests."""
    pass


class InvalidIdentityError(PeeringError):
    """A physical resource id does not belong to the expected resource kind."""
    pass


class ConfigurationError(ValueError):
    """Raised when deployment or handler configuration fails validation."""
    pass


class AssumptionDenied(PeeringError):
    """
    The peer account refused to hand out credentials for the role.
    Retrying will not help until the trust relationship is fixed.
    """

    def __init__(self, role_arn: str, reason: str):
        self.role_arn = role_arn
        self.reason = reason
        super().__init__(f"Could not assume role '{role_arn}': {reason}")


class OrphanedPeeringConnection(PeeringError):
    """
    A peering connection was created but a later step failed.
    The connection exists unaccepted and has to be removed by teardown or by hand.
    """

    def __init__(self, connection_id: str, step: str, reason: str):
        self.connection_id = connection_id
        self.step = step
        self.reason = reason
        super().__init__(
            f"Peering connection {connection_id} was created but {step} failed: {reason}. "
            f"Delete {connection_id} manually if the stack rollback does not remove it."
        )


def error_code(error: Exception) -> str:
    """Returns the service error code of a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code', '')
    return ''


def error_message(error: Exception) -> str:
    """Returns the service error message of a ClientError, falling back to str()."""
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Message', str(error))
    return str(error)
