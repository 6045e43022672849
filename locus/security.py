"""
Heuristic request screening: proxy headers, bot user agents, suspicious header sets.

VPN detection is keyword matching on the user agent and Tor detection is a
fixed negative; neither is backed by network data.
"""
import re
from typing import List, Mapping, Optional, Tuple

from locus.models import SecurityAssessment
from locus.request_context import RequestContext

PROXY_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "x-original-ip",
    "x-forwarded",
    "forwarded-for",
    "via",
    "client-ip",
    "x-client-ip",
    "x-cluster-client-ip",
)

BOT_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"bot", r"crawler", r"spider", r"scraper",
        r"google", r"bing", r"yahoo", r"facebook",
        r"twitter", r"linkedin", r"whatsapp",
        r"curl", r"wget", r"python", r"java",
        r"postman", r"insomnia", r"httpie",
    )
]

# (pattern, label), first match wins
BOT_TYPES: Tuple[Tuple[str, str], ...] = (
    (r"google", "Search Engine (Google)"),
    (r"bing", "Search Engine (Bing)"),
    (r"facebook", "Social Media (Facebook)"),
    (r"twitter", "Social Media (Twitter)"),
    (r"curl|wget", "Command Line Tool"),
    (r"postman|insomnia", "API Testing Tool"),
    (r"python|java|node", "Programming Script"),
)

VPN_INDICATORS = ("VPN", "Proxy", "Anonymous", "Hide", "Private")

RECOMMENDATIONS = {
    "High": "Block or require additional verification",
    "Medium": "Monitor closely, consider rate limiting",
    "Low": "Allow with normal monitoring",
}


def detect_proxy_headers(headers: Mapping[str, str]) -> List[str]:
    return [h for h in PROXY_HEADERS if headers.get(h)]


def proxy_type(headers: Mapping[str, str]) -> str:
    if headers.get("via"):
        return "HTTP Proxy"
    if headers.get("x-forwarded-for"):
        return "Load Balancer/Proxy"
    if headers.get("cf-connecting-ip"):
        return "Cloudflare"
    if headers.get("x-real-ip"):
        return "Reverse Proxy"
    return "Unknown"


def bot_type(user_agent: Optional[str]) -> Optional[str]:
    """Bot label for a user agent, or None when no bot pattern matches."""
    if not user_agent or not any(p.search(user_agent) for p in BOT_PATTERNS):
        return None
    for pattern, label in BOT_TYPES:
        if re.search(pattern, user_agent, re.IGNORECASE):
            return label
    return "Unknown Bot"


def vpn_indicators(user_agent: Optional[str]) -> List[str]:
    return [word for word in VPN_INDICATORS if user_agent and word in user_agent]


def find_suspicious_headers(headers: Mapping[str, str]) -> List[str]:
    suspicious = []
    chain = [h for h in ("x-forwarded-for", "x-real-ip", "via") if headers.get(h)]
    if len(chain) > 2:
        suspicious.append("Multiple proxy headers")
    user_agent = headers.get("user-agent")
    if user_agent and re.search(r"curl|wget|postman", user_agent, re.IGNORECASE):
        suspicious.append("Automation tool user agent")
    if not headers.get("accept-language"):
        suspicious.append("Missing accept-language")
    if not headers.get("accept-encoding"):
        suspicious.append("Missing accept-encoding")
    return suspicious


def assess_security(context: RequestContext) -> SecurityAssessment:
    """
    Screen one request.

    Threat score: +30 for proxy headers, +40 for a bot user agent, +10 per
    suspicious finding. 70 and above is High, 40 and above Medium.
    """
    headers = context.headers
    proxies = detect_proxy_headers(headers)
    bot = bot_type(context.user_agent)
    suspicious = find_suspicious_headers(headers)

    score, reasons = 0, []
    if proxies:
        score += 30
        reasons.append("Using proxy/VPN")
    if bot:
        score += 40
        reasons.append("Automated bot detected")
    if suspicious:
        score += 10 * len(suspicious)
        reasons.append("Suspicious headers present")

    level = "High" if score >= 70 else "Medium" if score >= 40 else "Low"
    return SecurityAssessment(
        is_proxy=bool(proxies),
        proxy_headers=proxies,
        proxy_type=proxy_type(headers),
        is_bot=bot is not None,
        bot_type=bot,
        vpn_indicators=vpn_indicators(context.user_agent),
        is_tor=False,
        suspicious_headers=suspicious,
        threat_score=score,
        threat_level=level,
        threat_reasons=reasons,
        recommendation=RECOMMENDATIONS[level],
    )
