"""Keyword-based scam classification and tagging for call transcripts."""

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional


class ScamType(str, enum.Enum):
    IRS = "irs"
    TECH_SUPPORT = "tech_support"
    GIFT_CARD = "gift_card"
    BANK = "bank"
    MEDICARE = "medicare"
    WARRANTY = "warranty"
    LOTTERY = "lottery"
    SOCIAL_SECURITY = "social_security"
    CRYPTO = "crypto"
    ROMANCE = "romance"
    UNKNOWN = "unknown"


SCAM_KEYWORDS: Dict[ScamType, List[str]] = {
    ScamType.IRS: [
        "irs", "internal revenue", "tax", "taxes", "federal tax", "tax debt", "tax fraud",
        "tax lien", "tax refund", "audit", "tax evasion", "treasury", "back taxes",
    ],
    ScamType.TECH_SUPPORT: [
        "microsoft", "windows", "computer", "virus", "malware", "infected", "hacked", "hacker",
        "tech support", "technical support", "remote access", "anydesk", "teamviewer",
        "error message", "blue screen", "security alert", "firewall", "norton", "mcafee",
        "antivirus", "apple support", "geek squad",
    ],
    ScamType.GIFT_CARD: [
        "gift card", "giftcard", "itunes", "google play", "amazon card", "target card",
        "walmart card", "steam card", "best buy card", "prepaid card", "redemption code",
        "scratch off",
    ],
    ScamType.BANK: [
        "bank", "banking", "account", "wire transfer", "routing number", "account number",
        "suspicious activity", "fraud alert", "chase", "wells fargo", "bank of america",
        "citibank", "credit union", "unauthorized transaction", "overdraft", "direct deposit",
    ],
    ScamType.MEDICARE: [
        "medicare", "medicaid", "health insurance", "prescription", "medical card", "healthcare",
        "new medicare card", "benefits", "enrollment", "coverage", "supplement", "part d", "part b",
    ],
    ScamType.WARRANTY: [
        "warranty", "extended warranty", "car warranty", "vehicle warranty", "auto warranty",
        "service contract", "coverage expiring", "factory warranty", "bumper to bumper",
    ],
    ScamType.LOTTERY: [
        "lottery", "sweepstakes", "prize", "winner", "jackpot", "you won", "congratulations",
        "million dollars", "publishers clearing", "mega millions", "powerball", "lucky",
    ],
    ScamType.SOCIAL_SECURITY: [
        "social security", "ssa", "social security number", "ssn", "benefits suspended",
        "identity theft", "social security administration", "your number has been",
        "compromised", "suspended",
    ],
    ScamType.CRYPTO: [
        "bitcoin", "cryptocurrency", "crypto", "ethereum", "blockchain", "wallet", "coinbase",
        "binance", "investment opportunity", "returns", "trading platform",
    ],
    ScamType.ROMANCE: [
        "love", "dating", "relationship", "overseas", "military", "deployment", "send money",
        "western union", "moneygram", "emergency", "hospital", "customs",
    ],
    ScamType.UNKNOWN: [],
}

GENERAL_TAG_KEYWORDS: Dict[str, List[str]] = {
    "aggressive": [
        "angry", "yelling", "screaming", "cursing", "threatening", "threat", "police", "arrest",
        "lawsuit", "lawyer",
    ],
    "urgent": [
        "urgent", "immediately", "right now", "today only", "act now", "expires", "deadline",
        "time sensitive", "limited time",
    ],
    "impersonation": [
        "officer", "agent", "investigator", "detective", "federal", "government", "official",
        "department", "authority",
    ],
    "payment_request": [
        "payment", "pay", "send", "transfer", "wire", "money", "dollars", "fee", "deposit", "amount",
    ],
    "personal_info": [
        "social security", "date of birth", "address", "mother maiden", "password", "pin",
        "verification", "verify", "confirm",
    ],
    "callback": ["call back", "callback", "return call", "call us back", "press 1", "press one"],
    "robocall": [
        "automated", "recorded", "press 1", "press one", "this is a call from", "this is an important",
    ],
    "successful_waste": ["hold on", "wait", "one moment", "let me check", "hold please", "just a minute"],
}

SCAM_TYPE_LABELS: Dict[ScamType, str] = {
    ScamType.IRS: "IRS/Tax Scam",
    ScamType.TECH_SUPPORT: "Tech Support Scam",
    ScamType.GIFT_CARD: "Gift Card Scam",
    ScamType.BANK: "Banking Scam",
    ScamType.MEDICARE: "Medicare Scam",
    ScamType.WARRANTY: "Warranty Scam",
    ScamType.LOTTERY: "Lottery/Sweepstakes Scam",
    ScamType.SOCIAL_SECURITY: "Social Security Scam",
    ScamType.CRYPTO: "Cryptocurrency Scam",
    ScamType.ROMANCE: "Romance Scam",
    ScamType.UNKNOWN: "Unknown Type",
}

# A type needs at least this many keyword hits before we commit to it
MIN_TYPE_SCORE = 2


@dataclass
class TagAnalysis:
    scam_type: ScamType = ScamType.UNKNOWN
    tags: List[str] = field(default_factory=list)
    confidence: float = 0.0


def scam_type_tag(scam_type: ScamType) -> str:
    return scam_type.value.replace("_", "-")


def analyze_transcript(transcript: str) -> TagAnalysis:
    """Score the transcript against every scam type and collect general tags.

    Substring matching, so "tax" also counts inside "taxes". Confidence is the
    winning score over the total hits, with the total floored at 5 so a couple
    of stray matches never look certain.
    """
    text = transcript.lower()

    scores = {
        scam_type: sum(1 for keyword in keywords if keyword in text)
        for scam_type, keywords in SCAM_KEYWORDS.items()
    }
    tags = [
        tag for tag, keywords in GENERAL_TAG_KEYWORDS.items() if any(keyword in text for keyword in keywords)
    ]

    best_type, best_score = ScamType.UNKNOWN, 0
    for scam_type, score in scores.items():
        if score > best_score:
            best_type, best_score = scam_type, score
    total = sum(scores.values())

    confidence = min(best_score / max(total, 5), 1.0) if total > 0 else 0.0
    if best_score < MIN_TYPE_SCORE:
        best_type = ScamType.UNKNOWN

    if best_type is not ScamType.UNKNOWN:
        type_tag = scam_type_tag(best_type)
        if type_tag not in tags:
            tags.insert(0, type_tag)

    return TagAnalysis(scam_type=best_type, tags=tags, confidence=confidence)


def build_transcript(segments: Iterable) -> str:
    """Render segments as ``SPEAKER: text`` lines, one per utterance."""
    lines = []
    for segment in segments:
        speaker = getattr(segment.speaker, "value", segment.speaker)
        lines.append(f"{speaker}: {segment.text}\n")
    return "".join(lines)


def merge_tags(existing: Optional[List[str]], new: Iterable[str]) -> List[str]:
    merged = list(existing or [])
    for tag in new:
        if tag not in merged:
            merged.append(tag)
    return merged


def scam_type_label(scam_type: ScamType) -> str:
    return SCAM_TYPE_LABELS.get(scam_type, "Unknown Type")