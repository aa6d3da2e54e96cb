"""FastAPI service that generates Japanese vocabulary flashcards.

Words posted to the flashcard endpoint are turned into an instruction
prompt and completed by an Ollama inference backend.
"""

__version__ = "0.1.0"
