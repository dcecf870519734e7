"""Input validation for CLI arguments.

Environment and secret name are joined into one Secret Manager id,
'{prefix}-{env}-{name}', so both parts share its character set.
"""
import re
import sys

# GCP secret ids allow only: [a-zA-Z0-9_-]
ID_PART_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def _reject(message: str, *hints: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    for hint in hints:
        print(hint, file=sys.stderr)
    sys.exit(2)


def validate_secret_name(name: str) -> None:
    """
    Validate the secret name part of a Secret Manager id.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        _reject("Secret name cannot be empty", "\nSecret names must match: [a-zA-Z0-9_-]")

    if not ID_PART_PATTERN.match(name):
        _reject(
            f"Invalid secret name '{name}'",
            "\nThe name becomes the last part of '{prefix}-{env}-{name}' in Secret Manager,",
            "so only letters, numbers, underscores (_) and hyphens (-) are accepted.",
            "\nFor example 'db-password' or 'API_KEY', not 'api.key' or 'MY SECRET'.",
        )


def validate_environment(environment: str) -> None:
    """
    Validate environment name.

    A '-' is accepted but makes ids ambiguous when listing: 'dev' would also
    match secrets of 'dev-eu'.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not environment or not ID_PART_PATTERN.match(environment):
        _reject(
            f"Invalid environment '{environment}'",
            "\nEnvironment names must match: [a-zA-Z0-9_-]",
        )


def validate_secret_value(value: str) -> None:
    """Reject empty or whitespace-only values; Secret Manager refuses empty payloads."""
    if not value or value.strip() == "":
        _reject(
            "Secret value cannot be empty",
            "\nGCP Secret Manager does not allow empty secret payloads.",
        )
