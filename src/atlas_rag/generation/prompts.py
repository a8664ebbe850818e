"""Prompt template for grounded answer synthesis."""

from __future__ import annotations

from langchain_core.prompts import PromptTemplate

RAG_TEMPLATE = """\
Use the following pieces of context to answer the question at the end. \
If you don't know the answer, just say that you don't know, don't try to make up an answer.

Context: {context}

Question: {question}

Helpful Answer:"""

RAG_PROMPT = PromptTemplate.from_template(RAG_TEMPLATE)


def build_rag_prompt(question: str, context: str) -> str:
    """Render the grounded prompt for *question* over the retrieved *context*.

    Parameters
    ----------
    question:
        The user question.
    context:
        Citation-tagged chunks joined by separators, or the
        "no relevant documents" sentinel.
    """
    return RAG_PROMPT.format(context=context, question=question)
