"""Voice Agent Builder Backend Service.

This package turns a person's or company's profile URL into a lead-generation
voice agent: it extracts a structured profile, generates a conversation flow
with a chat-completion model, lets the flow be edited and previewed, and
provisions the agent with ElevenLabs before storing the record.
"""

__version__ = "0.1.0"
