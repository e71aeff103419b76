"""
Technical memory module.

Adds language/framework detection, error extraction, technical tags and a
content-based importance score to stored metadata.
"""

import re
from typing import Any

from memhub.core.modules.standard import DEFAULT_IMPORTANCE, VectorMemoryModule

TECHNICAL_SEARCHABLE_FIELDS = ["tool", "language", "framework", "error_type", "tags"]
TECHNICAL_INDEXED_FIELDS = ["language", "framework", "error_type"]

# First match wins, so more specific languages come first
LANGUAGE_PATTERNS: dict[str, re.Pattern] = {
    "python": re.compile(r"\b(def|elif|lambda|__init__|self\.|print\(|if __name__)", re.I),
    "typescript": re.compile(r"\b(interface|enum|namespace|declare)\b|: (string|number)\b"),
    "javascript": re.compile(r"\b(const|let|var|function|require|async|await)\b|=>"),
    "java": re.compile(r"\b(public static void|extends|implements|System\.out)\b"),
    "go": re.compile(r"\b(func|package|defer|goroutine|chan)\b"),
    "rust": re.compile(r"\b(fn|mut|impl|trait|Some|None)\b"),
    "cpp": re.compile(r"#include|std::|\bcout\b|\bcin\b|\btemplate\b"),
    "csharp": re.compile(r"\busing System\b|\bnamespace\b.*\{"),
}

FRAMEWORK_PATTERNS: dict[str, dict[str, re.Pattern]] = {
    "javascript": {
        "react": re.compile(r"\b(React|useState|useEffect|JSX)\b"),
        "vue": re.compile(r"\b(Vue|v-model|v-if|v-for)\b"),
        "angular": re.compile(r"(@Component|@Injectable|NgModule)"),
        "express": re.compile(r"\b(express|app\.(get|post|put|delete))\b"),
        "nextjs": re.compile(r"\b(getServerSideProps|getStaticProps|next/)"),
    },
    "typescript": {
        "react": re.compile(r"\b(React|useState|useEffect|JSX)\b"),
        "angular": re.compile(r"(@Component|@Injectable|NgModule)"),
    },
    "python": {
        "django": re.compile(r"\b(django|models\.Model)\b", re.I),
        "flask": re.compile(r"\b(Flask|render_template)\b|@app\.route"),
        "fastapi": re.compile(r"\b(FastAPI|APIRouter)\b"),
        "pytorch": re.compile(r"\b(torch|nn\.Module)\b"),
        "tensorflow": re.compile(r"\b(tensorflow|keras)\b|\btf\."),
    },
}

ERROR_PATTERN = re.compile(r"\b(\w+(?:Error|Exception))\b(?::\s*([^\n]+))?")
STACK_TRACE_PATTERN = re.compile(r"(?:stack trace|traceback)[^\n]*:?\s*([\s\S]+?)(?:\n\n|$)", re.I)
CODE_BLOCK_PATTERN = re.compile(r"```[\w+-]*\n([\s\S]*?)```")

TECH_TERMS = (
    "api",
    "database",
    "authentication",
    "performance",
    "security",
    "testing",
    "deployment",
    "docker",
    "kubernetes",
    "aws",
    "algorithm",
    "optimization",
    "debugging",
    "certificate",
    "tls",
)

MAX_TAGS = 10


def detect_language(content: str) -> str | None:
    for language, pattern in LANGUAGE_PATTERNS.items():
        if pattern.search(content):
            return language
    return None


def detect_framework(content: str, language: str) -> str | None:
    for framework, pattern in FRAMEWORK_PATTERNS.get(language, {}).items():
        if pattern.search(content):
            return framework
    return None


class TechnicalModule(VectorMemoryModule):
    """Vector memory module with technical metadata enrichment."""

    def process_metadata(self, content: str, metadata: dict[str, Any]) -> dict[str, Any]:
        enriched = super().process_metadata(content, metadata)

        code_match = CODE_BLOCK_PATTERN.search(content)
        if code_match and "code_snippet" not in enriched:
            enriched["code_snippet"] = code_match.group(1).strip()

        if not enriched.get("language"):
            language = detect_language(enriched.get("code_snippet") or content)
            if language:
                enriched["language"] = language

        if not enriched.get("framework") and enriched.get("language"):
            framework = detect_framework(content, str(enriched["language"]))
            if framework:
                enriched["framework"] = framework

        if not enriched.get("error_type"):
            error_match = ERROR_PATTERN.search(content)
            if error_match:
                enriched["error_type"] = error_match.group(1)
                trace_match = STACK_TRACE_PATTERN.search(content)
                if trace_match:
                    enriched["stack_trace"] = trace_match.group(1).strip()

        if not enriched.get("tags"):
            enriched["tags"] = self._technical_tags(content, enriched)

        enriched["categories"] = self._categories(enriched)
        enriched["importance_score"] = self._importance(content, enriched)
        return enriched

    @staticmethod
    def _technical_tags(content: str, metadata: dict[str, Any]) -> list[str]:
        tags: list[str] = []
        for key in ("language", "framework"):
            if metadata.get(key):
                tags.append(str(metadata[key]))
        if metadata.get("error_type"):
            tags.append("error")

        lowered = content.lower()
        for term in TECH_TERMS:
            if re.search(rf"\b{re.escape(term)}", lowered) and term not in tags:
                tags.append(term)
        return tags[:MAX_TAGS]

    @staticmethod
    def _categories(metadata: dict[str, Any]) -> list[str]:
        categories = []
        if metadata.get("error_type"):
            categories.append("debugging")
        if metadata.get("code_snippet"):
            categories.append("code-examples")
        if metadata.get("documentation_type"):
            categories.append("documentation")
        if metadata.get("solution"):
            categories.append("solutions")
        if metadata.get("framework"):
            categories.append(f"framework-{metadata['framework']}")
        if metadata.get("language"):
            categories.append(f"lang-{metadata['language']}")
        return categories

    @staticmethod
    def _importance(content: str, metadata: dict[str, Any]) -> float:
        score = DEFAULT_IMPORTANCE
        if metadata.get("solution"):
            score += 0.2
        if metadata.get("error_type") and metadata.get("stack_trace"):
            score += 0.15
        if metadata.get("code_snippet"):
            score += 0.1
        if metadata.get("documentation_type"):
            score += 0.1
        if len(content) > 500:
            score += 0.05
        return min(score, 1.0)
