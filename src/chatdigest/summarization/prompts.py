"""Prompt templates for chunk summaries, consolidation and refinement.

Every template restricts the model to what is literally present in its
input: uncertainty markers are kept and contradictions are reported, never
resolved.
"""

SUMMARIZATION_SYSTEM_PROMPT: str = (
    "You are an expert analyst who creates clear, structured summaries of group "
    "conversations. ONLY include information explicitly stated in the messages. "
    "Do not add any information not directly present in the input."
)

CONSOLIDATION_SYSTEM_PROMPT: str = (
    "You are an expert analyst who creates clear, structured summaries of group "
    "conversations. Only include information explicitly stated in the summaries."
)

REFINEMENT_SYSTEM_PROMPT: str = (
    "You are an expert analyst who creates clear, structured executive summaries. "
    "Only include information explicitly stated in the original summary."
)


def build_initial_prompt(chat_text: str) -> str:
    """Build the prompt for the first chunk of a batch."""
    return f"""You are analyzing WhatsApp messages from a group conversation.

Summarize ONLY the information explicitly present in these chat messages. Focus on:
- Main topics discussed with DIRECT QUOTES when possible
- Factual information shared by participants (avoid interpretations)
- Questions asked and their exact answers if provided
- Decisions that were explicitly stated
- DO NOT add any information, names, or topics not directly mentioned in the messages

IMPORTANT: When you see [replying to X: "message"] in a message, this indicates the message is a reply to a previous message by user X. Use this reply context to:
- Better understand conversation threads
- Connect related messages even when they're separated by other messages
- Identify question-answer pairs when someone replies to a question
- Follow the flow of discussions on specific topics

If something is unclear or ambiguous, indicate this with phrases like "possibly discussing" or "unclear context about". If you're unsure about a topic or detail, acknowledge the uncertainty rather than guessing.

Format with clear topic headings and bullet points using only information from the chat.

CHAT MESSAGES:
{chat_text}

SUMMARY:"""


def build_continuation_prompt(batch_summary: str, chat_text: str) -> str:
    """Build the prompt for a later chunk of the same batch."""
    return f"""Continue analyzing this WhatsApp conversation.

Current summary:
{batch_summary}

CRITICAL INSTRUCTIONS:
- Include ONLY information present in these new messages
- If the new messages contradict the summary, mention both perspectives explicitly
- Use "according to the conversation" instead of assuming facts
- Maintain uncertainty markers like "possibly" or "appears to be"
- Do not add any details that seem speculative unless directly quoted

Incorporate these additional messages while maintaining the same format and structure:
- Add new topics if they appear
- Expand on previously mentioned topics with new information
- Note any resolution to previously mentioned questions or discussions

ADDITIONAL MESSAGES:
{chat_text}

UPDATED SUMMARY:"""


def build_consolidation_prompt(full_summary: str, batch_summary: str) -> str:
    """
    Build the prompt that merges a batch summary into the running summary.

    Args:
        full_summary: Running summary of everything before this batch
        batch_summary: Summary of the batch just processed

    Returns:
        Formatted prompt for the completion service
    """
    return f"""I have two summaries from different parts of the same WhatsApp conversation. Create a cohesive summary that integrates both.

CRITICAL INSTRUCTIONS:
- Include ONLY information present in either summary
- If the summaries contradict each other, mention both perspectives explicitly
- Use "according to the conversation" instead of assuming facts
- Maintain uncertainty markers like "possibly" or "appears to be" from the original summaries
- Remove any details that seem speculative unless directly quoted

FORMAT REQUIREMENTS:
1. Begin with a high-level overview (2-3 sentences) of CONFIRMED topics only
2. Organize by main discussion topics with clear headings
3. Use bullet points for key points under each topic
4. Highlight any decisions made or action items
5. Maintain chronological flow where relevant

FIRST SUMMARY:
{full_summary}

SECOND SUMMARY:
{batch_summary}

COMBINED SUMMARY:"""


def build_refinement_prompt(full_summary: str) -> str:
    """Build the final executive-summary prompt for multi-batch runs."""
    return f"""You're creating a final executive summary of a WhatsApp group conversation.

CRITICAL INSTRUCTIONS:
- Do NOT introduce new information not present in the draft summary
- Maintain all uncertainty markers (like "possibly" or "appears")
- Keep all contradictory perspectives mentioned in the original
- Clearly separate facts from opinions in the conversation

Please refine the following summary into a professional, well-organized report format with:

1. OVERVIEW: A brief introduction and high-level summary (1-2 paragraphs)
2. KEY TOPICS: Main discussion areas with bullet points for important details
3. DECISIONS & ACTION ITEMS: Clear list of any decisions made and actions assigned (if any)
4. NOTABLE MENTIONS: Any important links, events, or references shared in the chat

Keep the tone professional and focus on clarity and readability.

DRAFT SUMMARY:
{full_summary}

REFINED SUMMARY:"""
