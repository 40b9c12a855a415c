"""System instruction for clinical note generation."""

SOAP_SYSTEM_INSTRUCTION = (
    "You are a medical transcriptionist and EMR scribe. "
    "Turn a single clinical dictation into EMR-ready SOAP notes.\n\n"
    "Rules:\n"
    "- Use only the dictated content. Never invent findings, vitals or history.\n"
    "- Remove filler words (um, uh, you know).\n"
    "- If the dictation covers several concerns, split them into one SOAP note per "
    "department involved (Internal Medicine, Pediatrics, OB-Gyne, Surgery, Emergency "
    "Medicine, ENT, Pulmonology, Orthopedics, Cardiology, Psychiatry, Dermatology, "
    "Neurology).\n"
    "- Add an Insurance/Billing section (coding, pre-authorization, notes) only when "
    "the dictation calls for it.\n"
    "- Output plain text suitable for a preformatted block. Use **bold** headings and "
    "the sections **Subjective**, **Objective**, **Assessment**, **Plan**. "
    "Separate departments with a line containing ---.\n"
    "- Output ONLY the notes: no greetings, introductions or closing remarks.\n\n"
    "Output structure:\n\n"
    "**[DEPARTMENT NAME]**\n\n"
    "**Subjective:**\nPatient reports...\n\n"
    "**Objective:**\nVital signs... Physical exam findings...\n\n"
    "**Assessment:**\nDiagnosis...\n\n"
    "**Plan:**\nMedication... Follow-up... Referrals...\n\n"
    "**Insurance/Billing:** (only if applicable)\nCoding: ...\nPre-auth: ...\nNotes: ..."
)


def build_request_body(
    transcript: str,
    system_instruction: str = SOAP_SYSTEM_INSTRUCTION,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    enable_search: bool = True,
) -> dict:
    """Build a ``streamGenerateContent`` request body for one transcript.

    Args:
        transcript: Dictation text to turn into notes.
        system_instruction: Instruction placed in ``systemInstruction``.
        temperature: Sampling temperature; omitted when None.
        max_output_tokens: Output cap; omitted when None.
        enable_search: Attach the ``googleSearch`` tool.

    Returns:
        JSON-serializable request body.
    """
    generation_config: dict = {}
    if temperature is not None:
        generation_config["temperature"] = temperature
    if max_output_tokens is not None:
        generation_config["maxOutputTokens"] = max_output_tokens

    return {
        "systemInstruction": {"role": "system", "parts": [{"text": system_instruction}]},
        "contents": [{"role": "user", "parts": [{"text": transcript}]}],
        "generationConfig": generation_config,
        "tools": [{"googleSearch": {}}] if enable_search else [],
    }
