"""System prompts and sampling temperature presets."""

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, friendly AI assistant. Provide clear, accurate, and concise responses. "
    "When you don't know something, say so honestly rather than guessing."
)

REMIX_PROMPT = (
    "Reword the following text to sound more natural and polished while preserving the original "
    "meaning and tone. Do not add any new information or change the intent. Return only the "
    "reworded text with no additional commentary."
)

CONTENT_SUMMARY_PROMPT = (
    "Provide a concise two-paragraph summary of the following text. The first paragraph should "
    "cover the main points and key findings. The second paragraph should highlight any important "
    "details, implications, or action items."
)

TRANSLATION_PROMPT = (
    "Translate the following text from {source_language} to {target_language}. "
    "Maintain the original tone and meaning as closely as possible. "
    "Return only the translated text with no additional commentary."
)


class TemperaturePresets:
    """Named sampling temperatures."""

    DETERMINISTIC = 0.0
    LOW = 0.3
    BALANCED = 0.7
    DEFAULT = 1.0
    HIGH = 1.5
    MAXIMUM = 2.0
