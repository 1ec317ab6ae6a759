"""
Multi-agent chat backend

LangGraph routing system with:
- Router: Classify each message with one LLM call
- Chat: General conversation (streams tokens)
- Retrieval: Knowledge-base questions (placeholder)
- Tool: External actions and real-time data (placeholder)
"""
