"""Process exit codes shared by every dcx subcommand."""

SUCCESS = 0

# Mount failed, devcontainer failed, engine unavailable, clean entry failed.
RUNTIME_ERROR = 1

# Workspace missing, recursive path, missing devcontainer config.
USAGE_ERROR = 2

# Answered anything but y/yes at a confirmation prompt.
USER_ABORTED = 4

# bindfs, devcontainer, docker or the unmount tool is not installed.
PREREQ_NOT_FOUND = 127

# Second Ctrl+C.
INTERRUPTED = 130
