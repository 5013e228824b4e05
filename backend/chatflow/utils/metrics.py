# /chatflow/utils/metrics.py

from prometheus_client import Counter

# This file defines all Prometheus metrics used for flow monitoring.
# Only the turn service touches them; the engine stays free of shared state.

flow_turns_counter = Counter('flow_turns_total', 'Flow turns handled', ['action', 'outcome'])
flow_reprompts_counter = Counter('flow_reprompts_total', 'Soft re-prompts returned to the user', ['reason'])
flow_errors_counter = Counter('flow_errors_total', 'Fatal flow engine errors', ['kind'])
flow_captured_fields_counter = Counter('flow_captured_fields_total', 'Fields captured from user answers', ['field'])
