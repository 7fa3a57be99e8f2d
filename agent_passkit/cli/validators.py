"""Input validation for CLI arguments."""
import re
import sys
from typing import Dict, List, Tuple

# Path segments map onto Secret Manager IDs, which allow only [a-zA-Z0-9_-]
SEGMENT_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
MAX_NAME_LENGTH = 255


def validate_secret_name(name: str) -> None:
    """
    Validate a hierarchical secret name such as 'web/github/token'.

    Raises:
        SystemExit with code 2 if validation fails
    """
    segments = name.strip("/").split("/")
    if len(name) <= MAX_NAME_LENGTH and all(SEGMENT_PATTERN.match(s) for s in segments) and "__" not in name:
        return

    print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
    print("\nNames are '/'-separated segments of letters, numbers, underscores (_) and hyphens (-).", file=sys.stderr)
    print("Not allowed: dots (.), spaces, empty segments, double underscores (__),", file=sys.stderr)
    print(f"or names longer than {MAX_NAME_LENGTH} characters.", file=sys.stderr)
    print("\nExamples of valid names:", file=sys.stderr)
    print("  ✓ MY_SECRET", file=sys.stderr)
    print("  ✓ web/github/api-token", file=sys.stderr)
    print("\nExamples of invalid names:", file=sys.stderr)
    print("  ✗ api.key (contains dot)", file=sys.stderr)
    print("  ✗ web//token (empty segment)", file=sys.stderr)
    sys.exit(2)


def split_args(args: List[str]) -> Tuple[List[str], Dict[str, str]]:
    """
    Separate positional arguments from key=value metadata pairs.

    Returns:
        Tuple of (positional args, metadata dict)

    Raises:
        SystemExit with code 2 if a pair has an empty key
    """
    positional = []
    metadata = {}
    for arg in args:
        if "=" not in arg:
            positional.append(arg)
            continue
        key, _, value = arg.partition("=")
        if not key:
            print(f"Error: Invalid metadata '{arg}': key must not be empty", file=sys.stderr)
            sys.exit(2)
        metadata[key] = value
    return positional, metadata
