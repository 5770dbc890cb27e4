"""Classification of AWS client errors for the retry driver."""

from botocore.exceptions import ClientError, NoCredentialsError, NoRegionError

# Error codes retrying cannot fix
PERMANENT_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "ResourceNotFoundException",
        "DBClusterNotFoundFault",
        "DBInstanceNotFound",
        "DBInstanceNotFoundFault",
    }
)

# Client-side errors raised before any request is sent
PERMANENT_BOTOCORE_ERRORS = (NoCredentialsError, NoRegionError)


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def is_permanent_client_error(error: ClientError) -> bool:
    """Check if a ClientError should stop retries."""
    code = error_code(error)
    if code in PERMANENT_ERROR_CODES:
        return True
    # CloudFormation reports unknown stacks as a ValidationError
    message = error.response.get("Error", {}).get("Message", "")
    return code == "ValidationError" and "does not exist" in message
