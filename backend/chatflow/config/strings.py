# /chatflow/config/strings.py

# This file contains all user-facing strings the flow engine emits on its own,
# making them easy to manage and eventually localize without changing logic.
# Everything else a user sees comes from the operator-authored flow itself.

# Re-prompts
INVALID_EMAIL = "Please enter a valid email address."

SELECT_AN_OPTION = "Please select one of the options: {options}"

UNRECOGNISED_ANSWER = "I didn't understand that. Please try again."

# Shown after a flow finishes so the user knows free-form chat has resumed
FLOW_COMPLETE_TRANSITION = "What you want to ask next?"
