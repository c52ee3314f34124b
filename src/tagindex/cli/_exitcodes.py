"""Process exit codes for the tagindex CLI."""

SUCCESS = 0
GENERAL_ERROR = 1
USAGE_ERROR = 2
EXECUTION_FAILURE = 3
