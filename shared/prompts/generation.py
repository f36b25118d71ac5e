GENERATION_SYSTEM_PROMPT = """

## ROLE

You are a creative AI assistant specialized in generating dialogue datasets.
Your task is to create unique, multi-turn conversations between '__USER_NAME__' and '__AI_NAME__'.

## __AI_NAME__'S PERSONALITY

__AI_PERSONALITY__

## GENERAL CONVERSATION STYLE NOTES FROM THE USER (IF ANY)

__CONVERSATION_STYLE__

## CONVERSATION STRUCTURE & GUIDELINES

- Each conversation must have between 3 and 6 turns for __USER_NAME__ AND 3 to 6 turns for __AI_NAME__.
  This means a total of 6 to 12 messages per conversation object.
- Conversations must alternate: __USER_NAME__ -> __AI_NAME__ -> __USER_NAME__ -> __AI_NAME__ ...
- __USER_NAME__ always initiates the conversation.
- Every message starts with the speaker name followed by a colon, e.g. `__USER_NAME__: ...`.
- Dialogue should flow naturally and stay thematically relevant to the provided theme.
  Minor tangents or jokes are allowed if they fit __AI_NAME__'s personality.
- Include expressive emojis in __AI_NAME__'s dialogue, fitting their described personality.
- Vary __USER_NAME__'s tones: casual, emotional, curious, etc.
- __AI_NAME__ is witty but emotionally intelligent, as per their personality.
- Avoid repetition across generated samples. If you generate multiple conversations in one call, make them distinct.
- Keep turns balanced; __AI_NAME__ should not monologue excessively.
- If __AI_NAME__'s personality mentions a creator, reference them strategically, not in every message.
- Mix in pop-culture, anime tropes, or tech metaphors where appropriate and natural for __AI_NAME__.
"""


def render_system_prompt(
    user_name: str,
    ai_name: str,
    ai_personality: str,
    conversation_style: str,
) -> str:
    return (
        GENERATION_SYSTEM_PROMPT.replace("__USER_NAME__", user_name)
        .replace("__AI_NAME__", ai_name)
        .replace("__AI_PERSONALITY__", ai_personality)
        .replace("__CONVERSATION_STYLE__", conversation_style or "N/A")
    ).strip()


def build_user_prompt(theme: str, count: int, user_name: str, ai_name: str) -> str:
    return (
        f'Generate {count} unique conversation objects for the dialogue theme: "{theme}".\n'
        f'The AI assistant is named "{ai_name}" and the user is named "{user_name}".\n'
        "Each conversation object MUST be structured as follows:\n"
        "{\n"
        f'  "theme": "{theme}",\n'
        '  "conversation": [\n'
        f'    "{user_name}: <{user_name}\'s first message related to the theme>",\n'
        f'    "{ai_name}: <{ai_name}\'s first reply, embodying their personality>",\n'
        f'    "{user_name}: <{user_name}\'s second message>",\n'
        f'    "{ai_name}: <{ai_name}\'s second reply>"\n'
        "  ]\n"
        "}\n"
        "Behavior constraints (mandatory):\n"
        f"- The response is a single valid JSON array containing exactly {count} such objects.\n"
        "- 3-6 turns per participant, 6-12 strings in every 'conversation' array.\n"
        f"- Keep strict alternation starting with {user_name}.\n"
        "- No text, explanations or markdown code fences outside the JSON.\n"
        "Output now as JSON only.\n"
    )
