from __future__ import annotations

OPTIMIZE_BULLET_PROMPT = """
You are a ruthless hiring manager. You hate fluff and reject generic AI adjectives.

Task: rewrite the resume bullet point below.
Never use words like "spearheaded", "orchestrated", "leveraged", "crucial", "visionary",
"comprehensive", "synergy". Use active verbs (Built, Audited, Reduced, Negotiated).
Use quantifiable metrics where the original supports them, otherwise make the outcome concrete.

Job description excerpt:
{job_excerpt}

Original bullet:
{bullet_text}

Return only the rewritten bullet text. No explanations, no quotes.
""".strip()

KEYWORDS_PROMPT = """
Extract the {max_keywords} most important technical skills or hard requirements from this job description.
Return a strict JSON array of strings.

Job description:
{job_text}
""".strip()

SCORE_BULLETS_PROMPT = """
You are a strict recruiter. Rate how strongly each resume bullet proves the candidate can do the job below.

Job description excerpt:
{job_excerpt}

Resume bullets:
{bullet_list}

Rules:
1. Score each bullet from 0 to 100. 0 = irrelevant fluff, 100 = perfect match for a core requirement.
2. Give a very brief (3-5 words) reason for each score.
3. Use the bullet ids exactly as given.

Return a strict JSON array of objects with keys: id (string), score (integer), reason (string).
""".strip()

SCORE_ONE_BULLET_PROMPT = """
Rate the relevance of this single resume bullet against the job description.

Job description excerpt:
{job_excerpt}

Bullet id: {bullet_id}
Bullet: {content}

Return a strict JSON object: {{"id": "{bullet_id}", "score": integer 0-100, "reason": short string}}
""".strip()

GAP_ANALYSIS_PROMPT = """
Perform a gap analysis between a candidate's resume and a job description.

Resume content (JSON, one entry per role):
{profile_text}

Job description:
{job_excerpt}

Instructions:
1. List the top 5 hard skills or technologies the job requires that are missing or barely mentioned in the resume.
2. List the top skills from the job description that the resume already demonstrates.

Return strict JSON: {{"missing": string[], "present": string[]}}
""".strip()

BRIDGING_BULLET_PROMPT = """
You are a resume strategist. The candidate has experience with "{skill}" but left it off their resume.
The job description requires it.

Candidate's rough notes: {user_context}
Target job excerpt: {job_excerpt}

Write ONE high-impact, metric-driven bullet point that proves this skill, based only on the notes.
Active verbs, no fluff.

Return only the bullet text.
""".strip()

COVER_LETTER_PROMPT = """
You are the candidate, {name}. Write a persuasive cover letter for the position of "{job_title}" at "{company}".

Job description:
{job_excerpt}

Background:
Summary: {summary}
History: {history}

Rules:
1. No placeholder text like [Your Name]. Sign with the real name: {name}.
2. Address it to "Dear Hiring Manager," when no contact name appears in the job description.
3. Structure: why this role and company, two or three skills from the background mapped to their needs,
   then a confident close.
4. Professional and confident, never arrogant. No fluff. Three paragraphs at most.

Return the full letter text only.
""".strip()

RESUME_PARSING_PROMPT = """
You are a data entry specialist converting a resume into structured JSON.

Instructions:
1. Extract the candidate's name, email, phone, location and summary.
2. Extract "experiences" as an array with company, role, start_date, end_date and location.
3. Split each role's description into atomic bullets.
4. Generate unique ids (for example "exp-1", "b-1") for every experience and bullet.

Return strict JSON matching:
{{
  "name": string, "email": string, "phone": string, "location": string, "summary": string,
  "experiences": [
    {{
      "id": string, "company": string, "role": string, "start_date": string, "end_date": string,
      "location": string,
      "bullets": [{{"id": string, "content": string, "is_locked": false, "is_visible": true}}]
    }}
  ]
}}
""".strip()

RESUME_TEXT_PROMPT = """
{instructions}

Input text:
{raw_text}
""".strip()
