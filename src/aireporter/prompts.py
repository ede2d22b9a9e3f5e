"""Prompt templates for report generation.

The wording is product content and may change freely. What callers rely on:
the HackerOne template is built from ``hackerone.section_delimiters`` so the
sections the model is told to emit are exactly the ones the parser reads.
"""

from __future__ import annotations

from .hackerone import SECTION_FIELDS, section_delimiters
from .models import normalize_mode

REDACTION_LEVELS = ("none", "low", "medium", "high")
DEFAULT_REDACTION = "none"

REPORT_LANGUAGES = [
    "English", "Spanish", "French", "German", "Italian", "Portuguese", "Russian",
    "Chinese (Simplified)", "Japanese", "Korean", "Arabic", "Hindi", "Turkish", "Dutch",
    "Polish", "Indonesian", "Vietnamese", "Thai", "Ukrainian", "Swedish", "Uzbek",
    "Persian (Farsi)", "Kazakh", "Kyrgyz", "Tajik", "Turkmen", "Pashto", "Dari",
    "Azerbaijani", "Georgian", "Armenian",
]
DEFAULT_LANGUAGE = "English"

_REDACTION_INSTRUCTIONS = {
    "none": "",
    "low": (
        "\n\n**REDACTION (Low):** Mask personal usernames and API keys or tokens "
        "(for example `user_***`, `sk-***abc`). Keep IP addresses, domains and "
        "endpoints visible for reproducibility."
    ),
    "medium": (
        "\n\n**REDACTION (Medium):** Redact private IP addresses (10.x, 192.168.x), "
        "personal usernames, email addresses and secrets. Keep the target domain, "
        "public endpoints and asset URLs visible so the vendor can locate the issue."
    ),
    "high": (
        "\n\n**REDACTION (High, mandatory):** Fully anonymize the report for public "
        "disclosure:\n"
        "- domain names -> `target.example.com` or `api.example.com`\n"
        "- IP addresses -> `[REDACTED-IP]`\n"
        "- usernames and emails -> `[USER]` or `user@example.com`\n"
        "- User-Agent strings -> `[REDACTED-UA]`\n"
        "- OS and browser versions -> `[REDACTED-OS]`\n"
        "- API keys, tokens and secrets -> `[REDACTED-KEY]`\n"
        "- company and product names -> `[COMPANY]` or `[PRODUCT]`\n"
        "- internal paths -> `/redacted/path/`\n"
        "Leave no real identifying information in the output."
    ),
}

_SECTION_HINTS = {
    "asset": "[The specific asset, URL or endpoint taken from the findings]",
    "weakness": "[The most accurate CWE or weakness type]",
    "severity": "[Severity level] - CVSS: [vector estimate if the findings allow it]",
    "title": "[Concise title naming the vulnerability type. Do not include the domain or asset.]",
    "description": (
        "## Summary:\n"
        "[Two or three sentence overview]\n"
        "\n"
        "## Steps To Reproduce:\n"
        "1. [Step 1]\n"
        "2. [Step 2]\n"
        "\n"
        "### Proof of Concept (PoC):\n"
        "```http\n"
        "[Request/Response]\n"
        "```\n"
        "\n"
        "[Place screenshot references here as raw @img-xxx tokens, one per line.]"
    ),
    "impact": "[What an attacker can achieve, explained in detail]",
}


def normalize_redaction(level: str | None) -> str:
    token = (level or "").strip().lower()
    return token if token in REDACTION_LEVELS else DEFAULT_REDACTION


def redaction_instruction(level: str | None) -> str:
    return _REDACTION_INSTRUCTIONS[normalize_redaction(level)]


def hackerone_scaffold() -> str:
    blocks = []
    for name in SECTION_FIELDS:
        start, end = section_delimiters(name)
        blocks.append(f"{start}\n{_SECTION_HINTS[name]}\n{end}")
    return "\n\n".join(blocks)


def _hackerone_prompt(findings: str, language: str, redaction: str) -> str:
    return (
        "You are a top-tier bug bounty hunter on HackerOne. Write a clear, reproducible, "
        "high-impact vulnerability report. The output is parsed by software, so use the "
        "delimiters below exactly.\n"
        "\n"
        "## Input Findings:\n"
        f"{findings}\n"
        "\n"
        "## Output Requirements:\n"
        f"Write the content in Markdown, in {language}. Use this structure exactly and "
        "write nothing outside the delimiters.\n"
        "\n"
        f"{hackerone_scaffold()}\n"
        "\n"
        "---\n"
        "\n"
        "**RULES:**\n"
        f"- **LANGUAGE:** The whole report is in {language}.\n"
        "- **DELIMITERS:** Keep every <<<SECTION>>> and <<<END_SECTION>>> tag as shown.\n"
        "- **IMAGE REFERENCES:** Reuse @img-xxx references from the input verbatim.\n"
        "- **NO FLUFF:** Technical and precise."
        f"{redaction_instruction(redaction)}\n"
    )


def _standard_prompt(findings: str, language: str, redaction: str) -> str:
    return (
        "You are an elite security researcher. Turn the raw findings below into a "
        "professional vulnerability report.\n"
        "\n"
        "## Input Findings:\n"
        f"{findings}\n"
        "\n"
        "## Output Requirements:\n"
        f"Write a security report in Markdown ({language}). Favor clarity, "
        "reproducibility and impact.\n"
        "\n"
        "---\n"
        "\n"
        "# [Vulnerability Name]\n"
        "\n"
        "**Severity:** [Critical/High/Medium/Low] | **CVSS:** [X.X estimate]\n"
        "\n"
        "**Asset:** `[Affected URL/Endpoint/Component]`\n"
        "\n"
        "**Weakness:** [CWE Name]\n"
        "\n"
        "## Summary\n"
        "[Two or three sentences on the vulnerability and its root cause.]\n"
        "\n"
        "## Steps To Reproduce\n"
        "1. [Step 1]\n"
        "2. [Step 2]\n"
        "\n"
        "## Proof of Concept\n"
        "[Payloads, HTTP requests or code in fenced blocks. Label HTTP requests with the "
        "language `request` and HTTP responses with `response`.]\n"
        "\n"
        "[Screenshot references from the input go here as @img-xxx on their own line.]\n"
        "\n"
        "## Impact\n"
        "[What an attacker can concretely achieve.]\n"
        "\n"
        "## Recommendation\n"
        "1. [Step 1]\n"
        "2. [Step 2]\n"
        "\n"
        "---\n"
        "\n"
        "**RULES:**\n"
        f"- **LANGUAGE:** Write in {language}.\n"
        "- **ACCURACY:** Use only what the findings support. No invented details.\n"
        "- **IMAGES:** Reuse the provided @img-xxx references exactly.\n"
        "- **STYLE:** Professional security tone, active voice, concise."
        f"{redaction_instruction(redaction)}"
    )


def build_report_prompt(
    findings: str,
    *,
    language: str = DEFAULT_LANGUAGE,
    mode: str = "standard",
    redaction: str = DEFAULT_REDACTION,
) -> str:
    language = (language or "").strip() or DEFAULT_LANGUAGE
    if normalize_mode(mode) == "hackerone":
        return _hackerone_prompt(findings, language, redaction)
    return _standard_prompt(findings, language, redaction)
