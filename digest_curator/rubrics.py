"""Prompt text for LLM curation: judge role, per-category rubrics and output contract."""

ITEMS_HEADER = "Items to evaluate:"

INTERNAL_LINK_NOTE = "[WARNING: feed reader internal link - original URL could not be extracted]"

JUDGE_ROLE = """\
You are a Relevance Judge for a specialized market intelligence newsletter about \
Code Intelligence and Developer Experience. Strictly filter and score content \
within its category against the rubric below."""

INTERNAL_LINK_INSTRUCTION = f"""\
Items carrying the note "{INTERNAL_LINK_NOTE}" point at a feed reader page that \
readers may not be able to open. Downgrade these by 1-2 points unless they are \
exceptionally relevant."""

OUTPUT_INSTRUCTION = """\
Return ONLY a JSON object, no prose and no markdown, of the form:
{"ratings": [{"id": "string", "score": number, "reasoning": "string (concise justification, mention key relevance)"}]}
Scores are on a 0-10 scale. Rate every item exactly once, using its id."""

CURATION_FOCUS = """\
Focus: code search, context management and developer tools for large codebases \
in the era of AI.

Score 7-10 only for content about: semantic code search and codebase indexing; \
managing LLM context over code (RAG for code, multi-file reasoning); developer \
tools for enterprise codebases; information retrieval in software development; \
AI agents that write, review or fix code; competitive moves by code intelligence \
companies; research on LLMs, reasoning or retrieval applied to code.

Score 5-6 for general AI engineering practice that applies to code understanding, \
coding-focused benchmarks, large-context agent architecture, or developer \
experience and AI tooling adoption trends.

Score below 5 for consumer AI news without coding relevance, unrelated web \
development, consumer tech, crypto or policy news, and low-signal content."""

CATEGORY_RUBRICS: dict[str, str] = {
    "research": """\
RESEARCH PAPERS (arXiv, academic):
Only papers with a direct connection to code tooling, agents, context or retrieval.
- 9-10: breakthrough on code understanding agents, context management for coding, retrieval for development
- 7-8: strong relevance to agent reasoning over code, LLM context for code, or retrieval in software engineering
- 5-6: LLM architecture work with a clear path to code or tooling applications
- 0-4: general LLM papers without a code or tooling application""",
    "newsletter": """\
DEVELOPER NEWSLETTERS (TLDR, Pragmatic Engineer, etc.):
Only score high when the piece connects to developer tooling, code agents, context or retrieval.
- 9-10: directly covers code intelligence tools, AI agents for development, or AI developer experience
- 7-8: high-quality signal on development tools, AI adoption or code-related practice
- 5-6: developer content with a clear link to tooling, AI or code intelligence
- 0-4: generic developer content unrelated to our focus""",
    "community": """\
COMMUNITY SIGNALS (Reddit, forums):
Only score discussions with clear relevance to code search, developer tooling, agents or context.
- 9-10: strong signal on code intelligence gaps or developer needs for agents, tooling, context or search
- 7-8: relevant discussion of developer tooling, AI adoption or code management
- 5-6: developer discussion with a clear link to tooling or code intelligence
- 0-4: general developer chatter without that connection""",
    "industry": """\
INDUSTRY AND TECH NEWS (Hacker News, InfoQ, etc.):
Only score news with a direct connection to code tooling, agents, context or retrieval.
- 9-10: major innovation directly applicable to code intelligence, agents or developer tooling
- 7-8: strong technical advance relevant to code tooling, agents or context management
- 5-6: tech news with a clear link to code tools, retrieval or agents
- 0-4: general tech news without that connection""",
    "product": """\
PRODUCT UPDATES AND CHANGELOGS (GitHub, OpenAI, Anthropic, etc.):
Must connect directly to code intelligence, agents, context or developer tooling.
- 9-10: major feature for code intelligence, developer agents, or context and retrieval in coding
- 7-8: significant update relevant to code tooling, AI for developers, or context management
- 5-6: product update with clear developer tooling relevance
- 0-4: generic product update unrelated to code tooling""",
    "competitive": """\
COMPETITIVE INTELLIGENCE:
Must concern code intelligence, developer tooling, agent or context management companies.
- 9-10: major funding, acquisition or launch in code intelligence, agents or developer tooling
- 7-8: competitive move relevant to the code intelligence or developer tools market
- 5-6: company news with a clear link to code tools or agents
- 0-4: general company news without code, tooling or agent relevance""",
    "ai_insights": """\
AI INSIGHTS AND ARCHITECTURE:
Only score articles with a direct connection to code or development tooling.
- 9-10: breakthrough in LLM or agent architecture with a clear code tooling application
- 7-8: strong relevance to code agents, context management or reasoning for development
- 5-6: AI or LLM insight with a clear connection to code tooling
- 0-4: general AI content without a development application""",
}


def build_system_prompt(category: str) -> str:
    """System prompt for one curation category; unknown categories get the general focus."""
    rubric = CATEGORY_RUBRICS.get(category, CURATION_FOCUS)
    return "\n\n".join([JUDGE_ROLE, rubric, INTERNAL_LINK_INSTRUCTION, OUTPUT_INSTRUCTION])
