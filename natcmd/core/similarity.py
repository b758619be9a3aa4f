"""
String similarity used by the fuzzy catalog stage.

score(a, b) = LCS(a, b) / max(len(a), len(b)), on lowercase strings.
"""


def lcs_length(a: str, b: str) -> int:
    """Length of the longest common subsequence (two-row DP)."""
    if not a or not b:
        return 0
    if len(b) > len(a):
        a, b = b, a
    prev = [0] * (len(b) + 1)
    for ch_a in a:
        curr = [0] * (len(b) + 1)
        for j, ch_b in enumerate(b, start=1):
            if ch_a == ch_b:
                curr[j] = prev[j - 1] + 1
            else:
                curr[j] = prev[j] if prev[j] >= curr[j - 1] else curr[j - 1]
        prev = curr
    return prev[-1]


def score(a: str, b: str) -> float:
    """Normalized LCS ratio in [0, 1]. Two empty strings score 0.0."""
    a = (a or "").lower()
    b = (b or "").lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return lcs_length(a, b) / longest
