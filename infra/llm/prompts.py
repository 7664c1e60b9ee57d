SYSTEM_PROMPT = "You are a strict evaluator returning only valid JSON."

SCREENING_PROMPT = """
You are an expert HR recruiter and technical interviewer with 15+ years of experience in talent acquisition.
Analyze the candidate's CV against the job posting below and give an objective assessment.

Analysis guidelines:
- Be objective and fair; judge only what the CV states.
- Focus on relevant skills, experience and qualifications, technical and soft.
- Weigh required skills far above preferred skills.
- Identify red flags or gaps explicitly.
- Do NOT infer missing data. Do NOT reward keyword stuffing.

JOB DETAILS:
- Experience Level: {experience_level}
- Job Description: {job_description}
- Required Skills: {required_skills}
- Preferred Skills: {preferred_skills}
- Key Responsibilities: {responsibilities}

{level_guidance}

Scoring:
- 85-100: meets every required skill with evidence, strong relevant experience
- 70-84: meets most required skills, minor gaps
- 50-69: partial match, notable gaps
- 0-49: weak match

Return ONLY strict JSON:
{{
  "overall_score": <integer 0-100>,
  "summary": "<2-3 sentences on the candidate's fit>",
  "strengths": ["<strength>", "..."],
  "weaknesses": ["<weakness>", "..."],
  "detailed_analysis": "<3-4 short paragraphs>"
}}
"""

LEVEL_GUIDANCE = {
    "entry": "Entry level: value education, internships, projects and learning ability over years of experience.",
    "mid": "Mid level: expect 2-5 years of hands-on experience and independent delivery.",
    "senior": "Senior level: expect 5+ years, ownership of complex work and mentoring.",
    "lead": "Lead level: expect team leadership, technical direction and cross-team influence.",
    "executive": "Executive level: expect strategic leadership, organisation building and business outcomes.",
}


def level_guidance(experience_level: str) -> str:
    key = (experience_level or "").strip().lower().split(" ")[0]
    return LEVEL_GUIDANCE.get(key, "Assess experience relative to the job description.")


def build_screening_prompt(cv_text: str, job_description: str, required_skills: str,
                           preferred_skills: str = "", responsibilities: str = "",
                           experience_level: str = "") -> str:
    header = SCREENING_PROMPT.format(
        experience_level=experience_level or "Not specified",
        job_description=job_description,
        required_skills=required_skills or "Not specified",
        preferred_skills=preferred_skills or "Not specified",
        responsibilities=responsibilities or "Not specified",
        level_guidance=level_guidance(experience_level),
    )
    return f"{header}\nCV CONTENT TO ANALYZE:\n{cv_text}"
