SYSTEM_PROMPT = """You are a logical analysis expert participating in a deep exploration within a mind map structure. Provide focused, contextual responses based on the conversation path."""

CONVERSATION_PATH_HEADER = "## Conversation Path:"

SELECTED_TEXT_HEADER = "## User Selected Text:"

USER_QUESTION_HEADER = "## User Question:"

INSTRUCTION = "Provide a focused response based on the context path."

SELECTION_INSTRUCTION = "Provide a focused response based on the context path and the specific selected text."

ROLE_LABELS = {
    "root": "Root",
    "user": "User",
    "ai": "Assistant",
}
