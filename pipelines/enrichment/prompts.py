"""Prompts sent to the AI chat service during enrichment."""

HIERARCHY_SYSTEM = "You are an expert in organizational analysis and job market trends."

HIERARCHY_MESSAGE = """You are analyzing a job posting and a company's public org chart.

Your goal is to identify the most relevant reporting chain or leadership team responsible for hiring this role, starting from the closest manager up to the relevant VP, but excluding unrelated executives.

Use the job description and org structure data below.

Company: {company_name}

Job Description:
{description}

Organizational Structure:
{results}

Return the result in this format:

{{
  "orghierarchy": [
    {{ "name": "Closest Likely Hiring Manager", "title": "Relevant Manager Title" }},
    {{ "name": "Their Director", "title": "Director Title" }},
    {{ "name": "Relevant VP or Practice Lead", "title": "VP Title" }}
  ]
}}

Only include names and job titles that match the functional domain described in the job. Do not include global executives unless they directly oversee the hiring scope. If titles include unrelated roles (e.g. CFO, CMO), omit them. Only use names that appear in the organizational structure data; never invent example names.
"""

DIVISION_SYSTEM = "You are an expert in organizational analysis and job market trends."

DIVISION_MESSAGE = """Given the following:

Company Name: {company_name}

Job Description:
{description}

Your task is to:
1. Identify the most likely internal division or business unit at the company responsible for this job.
2. Use context from the job description and any publicly available knowledge about the company.
3. If no clear division can be identified, leave the Division value as an empty string.

Return the result in the following key-value format:

{{
  "Division": "<identified division>",
  "Reasoning": "<short justification>",
  "Confidence": <confidence score between 0 and 100>
}}

Do not include any explanation or extra text outside of the JSON object.
"""
