CV_EVAL_PROMPT = """
You are an expert technical recruiter evaluating a candidate's CV for a {job_title} position.

Job Description and Requirements:
{job_description}

Evaluation Rubric:
{rubric}

Candidate's CV:
{cv_text}

Based on the job requirements and evaluation rubric, please:
1. Rate the overall CV match (0.0 to 1.0 scale) based on:
   - Technical skills match (40%)
   - Experience level (25%)
   - Relevant achievements (20%)
   - Cultural fit indicators (15%)

2. Provide detailed feedback (3-5 sentences) covering strengths, gaps, and recommendations.

IMPORTANT: Your response MUST be a single valid JSON object in this exact format:
{{
  "match_rate": 0.82,
  "feedback": "Your detailed feedback here..."
}}
"""


PROJECT_EVAL_PROMPT = """
You are an expert technical evaluator reviewing a candidate's project report.

Case Study Requirements:
{case_brief}

Evaluation Rubric:
{rubric}

Candidate's Project Report:
{report_text}

Based on the requirements and rubric, please:
1. Provide a score (1.0 to 5.0 scale) based on:
   - Correctness & completeness (30%)
   - Code quality & structure (25%)
   - Resilience & error handling (20%)
   - Documentation quality (15%)
   - Creativity & extras (10%)

2. Provide detailed feedback (3-5 sentences) on strengths, weaknesses, and improvements.

IMPORTANT: Your response MUST be a single valid JSON object in this exact format:
{{
  "score": 4.2,
  "feedback": "Your detailed feedback here..."
}}
"""


FINAL_SUMMARY_PROMPT = """
You are a senior technical hiring manager making a final decision on a candidate for a {job_title} position.

CV Evaluation:
- Match Rate: {cv_match_rate:.2f} (0-1 scale)
- Feedback: {cv_feedback}

Project Evaluation:
- Score: {project_score:.1f} (1-5 scale)
- Feedback: {project_feedback}

Based on both evaluations, provide a 3-5 sentence overall summary that:
1. Summarizes the candidate's strengths
2. Identifies key gaps or concerns
3. Gives a hiring recommendation (strong hire / hire / maybe / no hire)

Be direct, professional, and actionable. Reply with plain text only.
"""
