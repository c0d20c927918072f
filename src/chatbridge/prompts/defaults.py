"""Built-in system prompt templates."""

from chatbridge.chat.stores import PromptTemplate

DEFAULT_TEMPLATES: tuple[PromptTemplate, ...] = (
    PromptTemplate(
        id="sys-explain-like-five",
        name="Explain Like I'm 5",
        description="Simple explanations anyone can follow",
        category="educational",
        template=(
            "Please explain this in very simple terms that a 5-year-old could understand. "
            "Use simple words, short sentences, and fun examples or analogies. "
            "Make it engaging and easy to follow."
        ),
        is_system_template=True,
    ),
    PromptTemplate(
        id="sys-technical-deep-dive",
        name="Technical Deep Dive",
        description="Detailed technical explanation with specifics",
        category="technical",
        template=(
            "Provide a comprehensive technical explanation with detailed specifics, "
            "technical terminology, implementation details, and relevant examples. "
            "Include any relevant code, formulas, or technical specifications."
        ),
        is_system_template=True,
    ),
    PromptTemplate(
        id="sys-creative-storyteller",
        name="Creative Storyteller",
        description="Imaginative answers with storytelling elements",
        category="creative",
        template=(
            "Respond in a creative, engaging way using storytelling elements. "
            "Be imaginative, use vivid descriptions, and make the response entertaining "
            "while still being informative."
        ),
        is_system_template=True,
    ),
    PromptTemplate(
        id="sys-professional",
        name="Professional Assistant",
        description="Formal, well-structured responses",
        category="professional",
        template=(
            "Provide a professional, well-structured response suitable for business or "
            "formal contexts. Use clear, concise language and maintain a professional tone "
            "throughout."
        ),
        is_system_template=True,
    ),
    PromptTemplate(
        id="sys-casual-friend",
        name="Casual Friend",
        description="Warm, conversational tone",
        category="casual",
        template=(
            "Respond in a friendly, casual, and conversational tone as if talking to a good "
            "friend. Be warm, supportive, and use natural language that feels personal and "
            "approachable."
        ),
        is_system_template=True,
    ),
)


def default_templates() -> list[PromptTemplate]:
    """Fresh copies, so usage counters are never shared between stores."""
    return [
        PromptTemplate(
            id=item.id,
            name=item.name,
            template=item.template,
            description=item.description,
            category=item.category,
            is_system_template=item.is_system_template,
        )
        for item in DEFAULT_TEMPLATES
    ]
