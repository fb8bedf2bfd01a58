"""Prompt definitions for Gemini transcript classification."""

SCAM_CLASSIFICATION_PROMPT = """
You label transcripts of phone calls made by scammers to a decoy line.

Read the transcript and answer with exactly ONE of these labels and nothing else:
irs, tech_support, gift_card, bank, medicare, warranty, lottery,
social_security, crypto, romance, unknown

RULES:
- Pick the scheme the caller is running, not what the decoy talks about
- Answer "unknown" if the caller never states what they want
- No punctuation, no explanation, lowercase only

TRANSCRIPT:
{transcript}
"""
