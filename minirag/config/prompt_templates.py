"""
MiniRAG - Prompt Templates & Lexical Constants
===============================================
Centralised prompt management and re-ranking vocabulary.  All prompts
live here so they can be reviewed and tuned independently of the
retrieval logic.

Exports
-------
SYSTEM_PROMPT, RAG_PROMPT_TEMPLATE, NO_CONTEXT_RESPONSE,
NAIVE_ANSWER_HEADER, STOP_WORDS.
"""

# ══════════════════════════════════════════════════════════════════════
#  KEYWORD RE-RANKING — Stop Words
# ══════════════════════════════════════════════════════════════════════
# Query tokens in this set never earn a keyword boost.  Articles,
# pronouns, auxiliaries and question words carry no entity signal.

STOP_WORDS: frozenset[str] = frozenset({"the", "is", "are", "in", "of", "and", "to", "a", "an", "where", "what", "which", "who", "how", "does", "do", "did", "on", "at", "for", "with", "from", "by", "about", "into", "over", "under", "it", "its", "be", "was", "were", "been"})


# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = """You are a concise assistant. Use ONLY the provided context to answer.
If the answer isn't in the context, say "I don't know".
Always answer in the same language as the question.
Write 1–3 sentences and cite the chunks you used like [#1], [#2]."""


# ══════════════════════════════════════════════════════════════════════
#  RAG PROMPT TEMPLATE
# ══════════════════════════════════════════════════════════════════════

RAG_PROMPT_TEMPLATE: str = """Context:
{context}

Question: {question}"""


# ══════════════════════════════════════════════════════════════════════
#  FALLBACK ANSWERS
# ══════════════════════════════════════════════════════════════════════

NO_CONTEXT_RESPONSE: str = "I don't know. (No relevant context was found.)"

NAIVE_ANSWER_HEADER: str = "Summary based on the most relevant chunks (may be simplified):"
