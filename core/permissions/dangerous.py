"""Dangerous command detection for approval prompts."""


# Substrings that make a command destructive no matter where they appear
DANGEROUS_COMMANDS = (
    "rm -rf /",
    "rm -rf ~",
    "dd if=",
    "mkfs.",
    ":(){ :|:& };:",  # fork bomb
    "chmod -R 777 /",
    "> /dev/sda",
)

# Softer signals that still deserve a second look
RISKY_FRAGMENTS = (
    "rm -rf",
    "git push --force",
    "git reset --hard",
    "chown -R",
    "curl | sh",
    "| bash",
)


def dangerous_command_warning(command: str) -> str | None:
    """
    Describe why a bash command is risky.

    Args:
        command: The bash command about to be approved

    Returns:
        A short warning for the reviewer, or None for ordinary commands
    """
    cmd = command.strip()

    for dangerous in DANGEROUS_COMMANDS:
        if dangerous in cmd:
            return f"Contains '{dangerous}', which can destroy the system"

    for fragment in RISKY_FRAGMENTS:
        if fragment in cmd:
            return f"Contains '{fragment}', which can be destructive"

    return None
