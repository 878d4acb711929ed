"""Feature name ↔ test case title matching used by auto-linking.

Plain case-insensitive substring containment: no tokenizing, stemming or
word boundaries. A short name such as "API" also matches "Rapid checkout".
"""


def normalize(text):
    """Lowercase form used on both sides of a comparison."""
    return (text or "").lower()


def matches(feature_name, test_case_title):
    """Return True when the feature name appears inside the test case title.

    An empty feature name matches every title; callers that create
    features reject empty names before they get here.
    """
    return normalize(feature_name) in normalize(test_case_title)


def filter_matching(feature_name, test_cases):
    """Return the subset of ``test_cases`` whose title matches ``feature_name``."""
    needle = normalize(feature_name)
    return [tc for tc in test_cases if needle in normalize(tc.title)]
