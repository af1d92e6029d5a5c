"""Review prompt templates and review summaries.

The codebase packager is an external step; its output arrives here as a
``PackagedCodebase`` and is wrapped in a review-type specific template.
"""

import re
from dataclasses import dataclass
from enum import Enum


class ReviewType(Enum):
    """Focus of the review prompt."""

    GENERAL = "general"
    SECURITY = "security"
    PERFORMANCE = "performance"
    ARCHITECTURE = "architecture"
    DOCS = "docs"

    @classmethod
    def parse(cls, value: str | None) -> "ReviewType":
        """Parse a review type, falling back to GENERAL for unknown values."""
        try:
            return cls((value or cls.GENERAL.value).lower())
        except ValueError:
            return cls.GENERAL


@dataclass(frozen=True)
class PackagedCodebase:
    """Output of the codebase packaging step."""

    prompt_ready_text: str
    token_count: int = 0
    directory_structure: str = ""
    summary_text: str = ""


BASE_TEMPLATE = """You are an expert code reviewer. I'm going to share a codebase with you for review.

Directory Structure:
{directory_structure}

Summary:
{summary}

Please review the following codebase and provide feedback:

{codebase}"""

FOCUS_INSTRUCTIONS = {
    ReviewType.GENERAL: """
Provide a general review focusing on:
1. Code quality and readability
2. Potential bugs or issues
3. Architecture and design
4. Performance concerns
5. Security considerations

Format your response with these sections and provide specific examples where possible.""",
    ReviewType.SECURITY: """
Conduct a thorough security review focusing on:
1. Authentication and authorization vulnerabilities
2. Input validation and sanitization
3. Injection vulnerabilities (SQL, XSS, etc.)
4. Sensitive data exposure
5. Security misconfiguration
6. Hard-coded secrets or credentials
7. Insecure cryptographic storage
8. Insufficient logging and monitoring

Categorize issues by severity (Critical, High, Medium, Low) and provide specific recommendations for each.""",
    ReviewType.PERFORMANCE: """
Conduct a detailed performance review focusing on:
1. Computational complexity analysis
2. Memory usage and potential leaks
3. Asynchronous operations and concurrency
4. Database queries and data access patterns
5. Network requests and API usage
6. Resource-intensive operations
7. Caching opportunities

For each issue, estimate the performance impact and provide specific recommendations for improvement.""",
    ReviewType.ARCHITECTURE: """
Provide an in-depth architecture review focusing on:
1. Overall system design and component organization
2. Separation of concerns and modularity
3. Design patterns used (and opportunities for better patterns)
4. Dependency management and coupling
5. API design and consistency
6. Error handling strategy
7. Testability of the codebase
8. Scalability considerations

Identify architectural strengths and weaknesses, with specific recommendations for improvement.""",
    ReviewType.DOCS: """
Review the codebase documentation focusing on:
1. Code comments quality and coverage
2. API documentation completeness
3. README files and usage instructions
4. Inline documentation of complex logic
5. Type definitions and interfaces
6. Missing documentation areas

Suggest specific documentation improvements with examples.""",
}


def build_review_prompt(
    packaged: PackagedCodebase,
    review_type: ReviewType | str = ReviewType.GENERAL,
) -> str:
    """Build the prompt sent to every backend."""
    if not isinstance(review_type, ReviewType):
        review_type = ReviewType.parse(review_type)

    base = BASE_TEMPLATE.format(
        directory_structure=packaged.directory_structure or "(not provided)",
        summary=packaged.summary_text or "(not provided)",
        codebase=packaged.prompt_ready_text,
    )
    return f"{base}\n{FOCUS_INSTRUCTIONS[review_type]}"


_HEADING_RE = re.compile(r"^#{1,3}\s+(.+)$", re.MULTILINE)
_SUMMARY_RE = re.compile(
    r"(?:Summary|Overview|Conclusion|Key Points)[:\s]([^\n]+(?:\n[^\n#]+)*)",
    re.IGNORECASE,
)
_SUMMARY_LIMIT = 300


def summarize_review(review: str) -> str:
    """Extract a short summary from a full review.

    Prefers section headings, then an explicit summary paragraph, then the
    first substantial paragraph, then the first three sentences.
    """
    if review.startswith("ERROR:"):
        return review

    headings = _HEADING_RE.findall(review)
    if len(headings) >= 2:
        areas = ", ".join(h.strip() for h in headings[:5])
        return f"The review covers the following key areas: {areas}."

    match = _SUMMARY_RE.search(review)
    if match and match.group(1).strip():
        return match.group(1).strip().replace("\n", " ")

    for paragraph in re.split(r"\n\s*\n", review):
        paragraph = paragraph.strip()
        if len(paragraph) > 100 and not paragraph.startswith("#"):
            if len(paragraph) > _SUMMARY_LIMIT:
                return paragraph[:_SUMMARY_LIMIT] + "..."
            return paragraph

    sentences = re.split(r"\.\s+", review.strip())
    summary = ". ".join(sentences[:3])
    if summary and not summary.endswith("."):
        summary += "."
    return summary
