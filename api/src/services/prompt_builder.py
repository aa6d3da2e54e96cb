"""Instruction prompt for single-word Japanese flashcards."""

from string import Template

PROMPT_PREAMBLE = """You are an AI designed to generate flashcards for learning Japanese.

**Instructions:**
Generate a flashcard in **structured JSON format only** based on the given Japanese word. The flashcard should include:
- The **word** in Kanji (if available).
- The **pronunciation** in Hiragana/Katakana and no english characters.
- The **meaning** in English.
- An **example sentence** in Japanese.
- The **English translation** of the example sentence.

Here is an example of the expected output:

{
  "front": {
    "word": "勉強",
    "pronunciation": "べんきょう"
  },
  "back": {
    "meaning": "Study, Learning",
    "example_sentence": {
      "japanese": "毎日、日本語を勉強しています。",
      "english": "I study Japanese every day."
    }
  }
}

Now, generate a flashcard for the following word:
"""

# $word is the only placeholder; the JSON braces above stay literal.
PROMPT_TEMPLATE = Template(PROMPT_PREAMBLE + "**Word:** $word")


def build_prompt(word: str) -> str:
    """Render the flashcard prompt for ``word``. Never fails, never validates."""
    return PROMPT_TEMPLATE.substitute(word=word)
