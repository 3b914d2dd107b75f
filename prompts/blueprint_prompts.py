"""
prompts/blueprint_prompts.py — Prompt templates for the Blueprint builder and refiner.
"""

from prompts.variants import PromptVariant

_GDS_INSTRUCTION = (
    "Act as a brand designer. Extend theme into a Generative Design System (GDS) with "
    "palette {text_primary,text_secondary,background_primary,background_secondary,"
    "accent_primary,accent_secondary,data_positive,data_negative,neutral}, typography "
    "{heading_font,body_font,heading_scale,body_scale,line_height}, and mood_keywords."
)

_BLOCKS = (
    "bullet_points, paragraph, statistic_highlight, pull_quote, callout, "
    "image_request, diagram_request, table_request"
)

# Selected through the style flag: visual → creative,
# minimal → concise, detailed → analytical.
BLUEPRINT_PROMPTS = {
    PromptVariant.DEFAULT: "\n".join([
        "You are an expert content creator. Output JSON ONLY matching the blueprint schema.",
        "Do not include any commentary.",
        _GDS_INSTRUCTION,
        f"For each slide, consider adding blocks: {_BLOCKS}. Keep 1-3 blocks per slide.",
    ]),
    PromptVariant.CREATIVE: "\n".join([
        "You are an expert content creator with a strong focus on visual storytelling.",
        "Emphasize visual elements, diagrams, and imagery to support your narrative.",
        "Output JSON ONLY matching the blueprint schema. Do not include any commentary.",
        "Act as a brand designer with emphasis on visual appeal and engaging layouts.",
        "For each slide, prioritize visual blocks: image_request, diagram_request, "
        "and visually appealing statistics or quotes.",
    ]),
    PromptVariant.CONCISE: "\n".join([
        "You are an expert content creator focused on clarity and brevity.",
        "Create clean, focused content that delivers key messages with maximum impact.",
        "Output JSON ONLY matching the blueprint schema. Do not include any commentary.",
        "Act as a brand designer with a minimalist approach. Create clean, elegant design systems.",
        "For each slide, use 1-2 focused blocks that deliver core messages clearly.",
    ]),
    PromptVariant.ANALYTICAL: "\n".join([
        "You are an expert content creator specializing in comprehensive, detailed presentations.",
        "Create rich, thorough content with extensive supporting details and context.",
        "Output JSON ONLY matching the blueprint schema. Do not include any commentary.",
        _GDS_INSTRUCTION,
        f"For each slide, include detailed blocks: {_BLOCKS}. Aim for 2-3 substantial blocks per slide.",
    ]),
}

BLUEPRINT_INSTRUCTIONS = (
    "Provide slides[1..N] with slide_id (s-01, s-02, ...), slide_index, slide_title, "
    "content_points (2-5), optional speaker_notes and visual_suggestion "
    "{type: image|diagram|table|quote|chart, description}. Optionally include blocks "
    "as above and a theme GDS. Return EXACTLY slide_count slides."
)

# ── Streaming ───────────────────────────────────────────────
BLUEPRINT_STREAM_PROMPT = "\n".join([
    "You are an expert content creator writing a presentation outline one slide at a time.",
    "Output ONLY slide JSON objects, written back-to-back with no commas, no array "
    "brackets, no markdown and no commentary: {...}{...}{...}",
    "Each object has slide_id (s-01, s-02, ...), slide_index, slide_title, "
    "content_points (2-5 strings), optional speaker_notes and visual_suggestion.",
    "Write EXACTLY slide_count objects, in order.",
])

# ── Refinement ──────────────────────────────────────────────
REFINE_SYSTEM_PROMPT = "\n".join([
    "You are a helpful presentation editor who respects explicit user edits.",
    "Return the FULL updated blueprint JSON only (no commentary).",
    "Do NOT reorder slides unless explicitly asked; preserve slide_id stability.",
    'If ambiguous, ask exactly one clarifying question in a field "_clarify" and do NOT '
    "make destructive changes.",
    f"When transforming content, prefer using blocks ({_BLOCKS}). Keep slide_id stable. "
    "Preserve theme GDS if present.",
    "context.target_slides lists the slide numbers the user referenced with @slideN.",
])


def blueprint_system_prompt(variant: PromptVariant = PromptVariant.DEFAULT) -> str:
    return BLUEPRINT_PROMPTS.get(PromptVariant.parse(variant), BLUEPRINT_PROMPTS[PromptVariant.DEFAULT])
