"""Prompts and progress notices for novel analysis.

System prompts are static so they cache across the per-chunk calls of one
run. Progress notices are written into the run transcript, so they are
Markdown meant for the reader.
"""

from workflows.novel_analysis.state import AnalysisKind, PromptSpec

# =============================================================================
# Default prompts, one per analysis kind
# =============================================================================

SUMMARY_PROMPT = PromptSpec(
    system="""You are an experienced fiction editor who writes reader's reports. Your job is to tell a busy publisher exactly what happens in a manuscript.
Be concrete: name characters, places and events. Do not evaluate the writing.""",
    user="""Summarize this part of the novel.

**Output (Markdown)**:
1. **One-line summary**: what this part is about, in a single sentence.
2. **What happens**: the main events in order, in a few tight paragraphs.
3. **Where things stand**: the situation of the main characters at the end of this part.""",
)

OUTLINE_PROMPT = PromptSpec(
    system="""You are a senior web-fiction editor and plot architect. Your task is to extract a deep, structured outline from novel text.
Ignore formatting noise. Focus on story progression, escalating conflict and climactic beats.""",
    user="""Analyze this stretch of the novel.

**Output (Markdown)**:
1. **Plot in one sentence**: what this part covers.
2. **Detailed event flow**:
   - List the key events in the order they happen.
   - Tag beats with [CLIMAX], [TURN] or [SETUP] where they apply.
   - If the text has explicit chapter divisions (e.g. "Chapter 12"), list the chapter titles.

Stay objective and concise.""",
)

STYLE_PROMPT = PromptSpec(
    system="""You are a sharp-tongued but fair literary critic. Your task is to dissect a novel's voice and bones.
Pay attention to narrative point of view, diction, emotional density and how characters speak.""",
    user="""Using this sample of the text, assess the writing style of the whole book.

**Dimensions**:
1. **Pacing**: fast-burn page-turner or slow build?
2. **Language**: quote one or two sentences and comment on them (ornate, spare, playful...).
3. **Characterization**: how does the author establish who people are?
4. **Emotional tone**: how does it feel to read (rousing, oppressive, warm, suspenseful)?
5. **Editor's verdict**: strengths and weaknesses, stated plainly.""",
)

SETTINGS_PROMPT = PromptSpec(
    system="""You are the compiler of a fantasy / science-fiction setting bible. Your task is to dig out the world-building implied by the text.
Pay attention to geography, power or magic systems, factions and proper nouns.""",
    user="""Extract every new setting element that appears in this text.

**Organize what you find (where present)**:
- **Geography and factions**: nations, sects, cities, notable terrain.
- **Power system**: ranks or levels, special abilities, weapons and artifacts.
- **People**: important characters introduced and who they are.
- **Terminology**: unique terms and what they mean.

If this text introduces nothing new, say so briefly.""",
)

RELATIONSHIPS_PROMPT = PromptSpec(
    system="""You are a story analyst who maps the social web of a novel. You track who is bound to whom, and how those bonds shift.""",
    user="""Map the character relationships shown in this text.

**Output (Markdown)**:
- **Cast**: each significant character with a one-line identity.
- **Relationships**: pairs or groups, the nature of the bond (family, rivalry, romance, alliance, debt...) and its current state.
- **Changes**: relationships that formed, broke or shifted in this text, with the event that caused it.""",
)

THEME_PROMPT = PromptSpec(
    system="""You are a literary scholar. You read past plot to find what a novel is about: its questions, motifs and moral arguments.""",
    user="""Identify the themes at work in this text.

**Output (Markdown)**:
1. **Themes**: each theme in a sentence, with the scenes or lines that carry it.
2. **Motifs and symbols**: recurring images, objects or patterns and what they seem to signify.
3. **Tensions**: values or ideas the story sets against each other.""",
)

PLOTHOLES_PROMPT = PromptSpec(
    system="""You are a continuity editor. You read adversarially, looking for anything a careful reader would catch: contradictions, dropped threads, impossible timelines and unmotivated choices.""",
    user="""Audit this text for plot holes and continuity problems.

**For each issue found**:
- **Problem**: what is inconsistent or missing.
- **Evidence**: the passages involved (quote briefly).
- **Severity**: minor / moderate / serious.
- **Possible fix**: one sentence.

Also list **open threads**: setups that have not yet paid off. If you find no problems, say so.""",
)

DEFAULT_PROMPTS: dict[AnalysisKind, PromptSpec] = {
    AnalysisKind.SUMMARY: SUMMARY_PROMPT,
    AnalysisKind.OUTLINE: OUTLINE_PROMPT,
    AnalysisKind.STYLE: STYLE_PROMPT,
    AnalysisKind.SETTINGS: SETTINGS_PROMPT,
    AnalysisKind.RELATIONSHIPS: RELATIONSHIPS_PROMPT,
    AnalysisKind.THEME: THEME_PROMPT,
    AnalysisKind.PLOTHOLES: PLOTHOLES_PROMPT,
}

# =============================================================================
# Digest condensation
# =============================================================================

CONDENSE_PROMPT = PromptSpec(
    system="""You are a speed-reading intelligence officer. You turn long stretches of fiction into dense, factual briefings that later analysts will rely on instead of the original text.
Strip filler and repetition. Keep every plot-relevant fact.""",
    user="""Condense this part of the novel into a factual briefing.

**Keep**:
- Every plot event, in order, with who did what.
- Every named character, place, faction, item and term, with what the text says about it.
- Relationship changes, reveals, promises and unresolved setups.
- Chapter titles, if present.

Write compact prose or bullet points. Do not interpret or evaluate; report.""",
)

# =============================================================================
# Second-pass synthesis
# =============================================================================

# Kinds that get a synthesis pass after a multi-chunk run
SYNTHESIS_KINDS = frozenset({
    AnalysisKind.OUTLINE,
    AnalysisKind.THEME,
    AnalysisKind.SUMMARY,
})

SYNTHESIS_INSTRUCTIONS: dict[AnalysisKind, str] = {
    AnalysisKind.OUTLINE: """The text above is a part-by-part analysis of a whole novel. Now step back and describe the overall narrative arc: the main storyline from opening to ending, its acts or major phases, the central conflict and how it escalates and resolves.""",
    AnalysisKind.THEME: """The text above is a part-by-part thematic analysis of a whole novel. Distill it: name the few core themes of the book as a whole, how they develop across the parts, and what the novel finally says about them.""",
}


def synthesis_instruction(kind: AnalysisKind, base_user_prompt: str) -> str:
    """User instruction for the synthesis pass of a kind.

    Kinds without extra synthesis wording (summary) reuse the base prompt
    unchanged over the accumulated per-part output.
    """
    extra = SYNTHESIS_INSTRUCTIONS.get(kind, "")
    if not extra:
        return base_user_prompt
    return f"{base_user_prompt}\n\n{extra}"


# =============================================================================
# Transcript notices
# =============================================================================

DIGEST_NOTICE = (
    "*Using the pre-computed digest ({length:,} characters) in place of the "
    "full text.*\n\n---\n\n"
)

SAMPLING_NOTICE = (
    "*Note: the document is too large to read in full, so its beginning, "
    "middle and end were sampled for a combined style analysis...*\n\n---\n\n"
)

CHUNKED_NOTICE = (
    "*Long document detected ({total} parts); analyzing it part by part...*\n\n"
)

CHUNK_HEADER = "\n\n### Part {position} of {total}\n\n"

CHUNK_SEPARATOR = "\n\n---\n"

SYNTHESIS_HEADER = "\n\n## Whole-book synthesis\n\n"

PROGRESS_ANNOTATION = "(Currently analyzing part {position} of {total}.)"


def format_user_prompt(
    base_prompt: str,
    position: int | None = None,
    total: int | None = None,
) -> str:
    """Append a progress annotation when analyzing one part of several."""
    if position is None or not total or total <= 1:
        return base_prompt
    return f"{base_prompt}\n\n{PROGRESS_ANNOTATION.format(position=position, total=total)}"
