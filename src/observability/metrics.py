"""Business metrics for Conversation Host.

Defines OpenTelemetry metrics for:
- Prompts: submissions, demo fallbacks and streaming outcomes
- Tools: invocations and provider discovery
- Persistence: transcript commits
"""

from opentelemetry import metrics

meter = metrics.get_meter(__name__)

# =============================================================================
# PROMPT METRICS
# =============================================================================

prompts_submitted = meter.create_counter(
    name="conversation_host.prompts.submitted",
    description="Total prompts submitted for streaming generation",
    unit="1",
)

demo_responses = meter.create_counter(
    name="conversation_host.prompts.demo_responses",
    description="Total requests answered with the demo response (no model resolved)",
    unit="1",
)

stream_errors = meter.create_counter(
    name="conversation_host.stream.errors",
    description="Total error frames emitted to callers",
    unit="1",
)

stream_duration = meter.create_histogram(
    name="conversation_host.stream.duration",
    description="Time from stream start to terminal frame",
    unit="ms",
)

# =============================================================================
# TOOL METRICS
# =============================================================================

tool_calls_executed = meter.create_counter(
    name="conversation_host.tools.calls_executed",
    description="Total tool invocations performed during generation",
    unit="1",
)

tool_discovery_failures = meter.create_counter(
    name="conversation_host.tools.discovery_failures",
    description="Total tool-provider discovery failures",
    unit="1",
)

tool_provider_connections = meter.create_counter(
    name="conversation_host.tool_providers.connection_attempts",
    description="Total tool-provider connection attempts",
    unit="1",
)

# =============================================================================
# PERSISTENCE METRICS
# =============================================================================

transcript_commits = meter.create_counter(
    name="conversation_host.transcripts.commits",
    description="Total transcript commits",
    unit="1",
)
