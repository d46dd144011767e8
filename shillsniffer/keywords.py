"""
Fixed vocabularies for the heuristic detectors.

Order matters: the first matching role/industry decides labels and tie-breaks,
so every table here is a list (or a list of pairs), never a set.
"""

ROLE_TRIGGERS = [
    "founder", "co-founder", "cofounder", "ceo", "cto", "coo", "cfo", "chief",
    "president", "director", "vp ", "vice president", "partner", "gp",
    "general partner", "managing partner", "advisor", "investor", "angel", "vc", "venture",
]

ACTION_TRIGGERS = [
    "building", "built", "creator of", "created", "making", "working on",
    "running", "leading", "scaling", "growing", "launching", "launched", "started", "starting",
]

FUNDING_TRIGGERS = [
    "backed by", "yc", "y combinator", "a16z", "andreessen", "sequoia", "raised",
    "series a", "series b", "series c", "seed", "pre-seed", "funding", "funded",
]

COMPANY_STOPWORDS = ["the", "and", "for", "with", "from"]

SELF_PROMO_PHRASES = [
    "i built", "we built", "i created", "we created", "i made", "we made",
    "we launched", "i launched", "just launched", "just shipped",
    "check out my", "check out our", "i've been working on", "we've been working on",
    "finally ready to share", "excited to announce", "proud to announce", "introducing",
    "game changer", "this changed everything", "changed my life",
    "i use this every day", "i've been using", "my new", "our new", "try my", "try our",
    "free trial", "try it free", "sign up free", "get started free", "start free", "for free at",
    "link in bio", "dm me", "dm for", "send me a dm",
    "the app is called", "the tool is called", "the product is called", "it's called", "called and it",
]

ENGAGEMENT_BAIT_PHRASES = [
    "here's what i learned", "here's what we learned", "most people don't know",
    "unpopular opinion", "hot take", "thread", "\U0001f9f5", "1/", "1)", "a thread",
    "let me explain", "here's the thing", "here's why", "stop doing this",
    "you need to know", "nobody talks about", "the secret to", "how i", "how we",
    "comment and i'll", "reply and i'll", "dm and i'll", "and i'll send", "and i'll hook",
    "hook you up", "i'll share", "i'll send you", "drop a comment", "leave a comment",
    "comment below", "reply with", 'comment "', "comment '",
]

INDUSTRY_KEYWORDS = [
    ("ai", [
        "ai", "artificial intelligence", "machine learning", "ml", "llm", "gpt", "chatgpt",
        "claude", "gemini", "openai", "anthropic", "agents", "neural", "deep learning",
    ]),
    ("crypto", [
        "crypto", "bitcoin", "btc", "ethereum", "eth", "blockchain", "web3", "defi", "nft",
        "token", "solana", "sol",
    ]),
    ("saas", ["saas", "software", "app", "platform", "tool", "product", "startup", "b2b", "b2c"]),
    ("dev", [
        "developer", "coding", "programming", "devtools", "api", "sdk", "framework",
        "open source", "github",
    ]),
    ("marketing", ["marketing", "growth", "seo", "content", "brand", "ads", "advertising", "social media"]),
    ("finance", ["fintech", "investing", "trading", "stocks", "finance", "banking", "payments"]),
]

QUESTION_PATTERNS = [
    "what do you", "what are you", "how do you", "how did you", "anyone know",
    "does anyone", "has anyone", "can someone", "what's your", "what is your",
    "who else", "any recommendations", "any suggestions", "thoughts on",
    "what do you think", "curious about", "wondering if", "anyone else", "?",
]

RECOMMENDING_OTHERS_PATTERNS = [
    "you should try", "check out @", "highly recommend @", "shoutout to @",
    "thanks to @", "credit to @", "love what @", "impressed by @", "congrats to @", "props to @",
]

AFFILIATE_URL_PARAMS = [
    "ref=", "ref_code=", "referral=", "referrer=", "via=", "aff=", "affiliate=",
    "affiliate_id=", "partner=", "partner_id=", "promo=", "coupon=", "discount=",
    "tag=", "ascsubtag=", "linkcode=", "linkid=",
    "afftrack=", "sscid=", "irclickid=", "rfsn=",
    "ranmid=", "raneaid=", "ransiteid=", "cjevent=", "cjdata=",
    "awc=", "awinaffid=", "ps_partner_key=", "ps_xid=",
    "tap_a=", "tap_s=", "fpr=",
    "utm_source=influencer", "utm_source=twitter", "utm_source=creator", "utm_source=partner",
    "utm_medium=affiliate", "utm_medium=influencer", "utm_medium=partner",
    "utm_campaign=influencer", "utm_campaign=affiliate",
]

LINK_IN_BIO_DOMAINS = [
    "linktr.ee", "linktree.com", "beacons.ai", "bio.link", "linkbio.co",
    "tap.bio", "lnk.bio", "hoo.be", "stan.store", "koji.to", "snipfeed.co", "campsite.bio",
]

CONVERSATIONAL_REPLIES = [
    "congrats", "thanks", "thank you", "agree", "yes", "no", "nice", "great", "awesome",
    "amazing", "love this", "so true", "exactly", "same", "lol", "haha",
]

ROLE_LABELS = {
    "founder": "a Founder", "co-founder": "a Co-Founder", "cofounder": "a Co-Founder",
    "ceo": "a CEO", "cto": "a CTO", "coo": "a COO", "cfo": "a CFO",
    "chief": "a Chief Officer", "president": "a President", "director": "a Director",
    "vp ": "a VP", "vice president": "a Vice President", "partner": "a Partner",
    "gp": "a General Partner", "general partner": "a General Partner",
    "managing partner": "a Managing Partner", "advisor": "an Advisor",
    "investor": "an Investor", "angel": "an Angel Investor",
    "vc": "a VC", "venture": "in Venture Capital",
}
