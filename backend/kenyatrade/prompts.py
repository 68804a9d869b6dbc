"""
KenyaTrade Insights — LLM Prompt Templates

All prompts are defined here. Each builder is a pure function returning a
single prompt string; the search tool is enabled by the caller in llm.py.

Every prompt asks for a hybrid answer: free-text analysis followed by one
```json fenced block. The fenced block is what parsing.extract_json looks for
first, and what strip_json_fence removes before the narrative is displayed.
"""


# -----------------------------------------------------------------------------
# 1. build_market_insights_prompt
# -----------------------------------------------------------------------------

MARKET_INSIGHTS_PROMPT = """
# Role
You are a senior market analyst covering the e-commerce sector of the destination country below.

# Task
Using Google Search, find the latest data on online purchasing behaviour in the destination country for this year.

I need two things:
1. A detailed executive summary of current market trends, popular niches and consumer behaviour.
2. A JSON array with the "Top 5 Online Shopping Categories by Market Share (%)".

# Output Format
Write the analysis text first, then the JSON block exactly like this:

[Analysis Text]

```json
[
  { "name": "Category Name", "value": 25 },
  ...
]
```

# Rules
- At most 5 categories.
- Every "value" must be a plain number representing a percentage (no "%" sign, no ranges).
- The values should roughly add up to the share of the market these categories hold.
- Put exactly one ```json block in the answer.
"""


def build_market_insights_prompt(country: str = "Kenya") -> str:
    """
    Build the market-insights prompt: executive summary + category share array.

    Expected JSON: list of {"name": str, "value": number} (ChartPoint), up to 5 items.
    """
    parts = [MARKET_INSIGHTS_PROMPT]
    parts.append(f"\n# Destination Country\n{country}\n")
    return "".join(parts)


# -----------------------------------------------------------------------------
# 2. build_recommendations_prompt
# -----------------------------------------------------------------------------

RECOMMENDATIONS_PROMPT = """
# Role
You are an import/export consultant who helps small traders source products from China.

# Output Format
Output:
1. A brief strategic overview of the import opportunity.
2. A JSON array of recommended items.

Format the JSON exactly like this:
```json
[
  {
    "id": "1",
    "productName": "Example Item",
    "category": "Electronics",
    "estimatedMargin": "50-70%",
    "demandLevel": "High",
    "reasoning": "Short explanation of why this sells well in the destination market."
  }
]
```

# Rules
- Exactly 6 items, each with a unique "id" ("1" to "6").
- "demandLevel" must be one of "High", "Medium" or "Low".
- "estimatedMargin" is a short human-readable range such as "40-60%".
- Put exactly one ```json block in the answer.
"""

GENERAL_SURVEY_TASK = """
# Task
Using Google Search, identify 6 highly profitable items to import from China to {country} right now, across popular categories.
Consider: AliExpress/Alibaba pricing, shipping to the main ports and cities of {country}, customs, and local resale prices in {country}.
"""

DEEP_DIVE_TASK = """
# Task
Using Google Search, run a deep-dive on the "{topic}" category: identify 6 specific products (SKUs) within it that are highly profitable to import from China to {country} right now.
Consider: AliExpress/Alibaba unit pricing for each SKU, shipping to the main ports and cities of {country}, customs treatment of this category, local competition and local resale prices in {country}.
In "reasoning", give 2-3 sentences per item: the demand signal you found, the rough buy and sell price, and the main risk.
"""


def build_recommendations_prompt(topic: str | None, country: str) -> str:
    """
    Build the import-recommendations prompt.

    Without a topic this asks for a general survey of 6 opportunities; with a
    topic it asks for a 6-SKU deep-dive with richer reasoning. Both variants
    request the same RecommendationItem array schema.
    """
    topic = (topic or "").strip()
    if topic:
        task = DEEP_DIVE_TASK.format(topic=topic, country=country)
    else:
        task = GENERAL_SURVEY_TASK.format(country=country)
    return "".join([RECOMMENDATIONS_PROMPT, task])


# -----------------------------------------------------------------------------
# 3. build_logistics_prompt
# -----------------------------------------------------------------------------

LOGISTICS_PROMPT = """
# Role
You are a freight forwarding and customs specialist for shipments from China.

# Task
Using Google Search, find current import logistics details for the product below.
Cover: the customs duty rate for this product type, VAT, typical air freight cost per kg,
typical sea freight cost (per CBM or container), the best-known freight forwarders on this
route, and a rough landed-cost estimate for a small first order.

# Output Format
You may add a short note, but you MUST include one JSON object exactly like this:
```json
{
  "customsDuty": "25% of CIF value",
  "vat": "16%",
  "airFreightCost": "$8-10 per kg",
  "seaFreightCost": "$150-200 per CBM",
  "topForwarders": ["Forwarder A", "Forwarder B", "Forwarder C"],
  "estimatedLandedCostText": "A $1,000 order lands at roughly $1,600 including freight, duty and VAT."
}
```

# Rules
- All rate fields are short human-readable strings.
- "topForwarders" is a list of 3-5 agent or company names.
- Do not omit fields; write "Unknown" if you cannot find a value.
"""


def build_logistics_prompt(product_name: str, category: str, country: str) -> str:
    """
    Build the logistics-detail prompt for one recommended product.

    Expected JSON: a single object with the six LogisticsDetails fields.
    """
    parts = [LOGISTICS_PROMPT]
    parts.append(f"\n# Product\n{product_name}")
    parts.append(f"\n\n# Category\n{category}")
    parts.append(f"\n\n# Route\nChina → {country}\n")
    return "".join(parts)
