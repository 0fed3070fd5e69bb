"""URL and header helpers for OpenAI and Azure OpenAI style APIs.

Azure routes requests per deployment and authenticates with an ``api-key``
header plus an ``api-version`` query parameter; OpenAI-compatible servers
take the model in the body and a bearer token.
"""

from pydantic import SecretStr

UNSET_API_KEY = "not-required"


def endpoint_url(
    base_url: str,
    operation: str,
    deployment: str,
    api_version: str | None = None,
) -> str:
    """Build the request URL for an operation.

    Args:
        base_url: API base URL, or the Azure resource endpoint.
        operation: Operation path, e.g. ``"embeddings"``.
        deployment: Azure deployment name (the model name).
        api_version: Azure api-version; ``None`` for OpenAI-style routing.

    Returns:
        Fully qualified URL.
    """
    base = base_url.rstrip("/")
    if api_version:
        return (
            f"{base}/openai/deployments/{deployment}/{operation}"
            f"?api-version={api_version}"
        )
    return f"{base}/{operation}"


def auth_headers(api_key: SecretStr | None, api_version: str | None = None) -> dict[str, str]:
    """Authentication headers for the configured key."""
    if api_key is None:
        return {}
    key = api_key.get_secret_value()
    if not key or key == UNSET_API_KEY:
        return {}
    if api_version:
        return {"api-key": key}
    return {"Authorization": f"Bearer {key}"}
