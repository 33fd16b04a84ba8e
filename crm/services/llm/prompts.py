"""
Prompts for the AI-assisted features.
"""
import json

_EXAMPLE_RULE_SET = {
    "logicalOperator": "AND",
    "conditions": [
        {"field": "totalSpends", "operator": "GREATER_THAN", "value": 1000, "dataType": "number"},
        {"field": "lastActiveDate", "operator": "OLDER_THAN_DAYS", "value": 90, "dataType": "date"},
    ],
    "groups": [
        {
            "logicalOperator": "OR",
            "conditions": [
                {"field": "email", "operator": "CONTAINS", "value": "@example.com", "dataType": "string"},
            ],
            "groups": [],
        }
    ],
}

SEGMENT_RULES_SYSTEM_PROMPT = f"""You convert natural language descriptions into JSON rule sets for customer segmentation.
Your answer must be one JSON object that follows this structure.

A rule group has:
- "logicalOperator": "AND" or "OR" (required)
- "conditions": array of condition objects (required, may be empty)
- "groups": array of nested rule groups (optional, may be empty)

A condition has:
- "field": one of ["totalSpends", "visitCount", "lastActiveDate", "name", "email"]
- "operator": one of ["EQUALS", "NOT_EQUALS", "GREATER_THAN", "LESS_THAN", "CONTAINS", "STARTS_WITH", "ENDS_WITH", "OLDER_THAN_DAYS", "IN_LAST_DAYS"]
- "value": string or number. For OLDER_THAN_DAYS and IN_LAST_DAYS it is a number of days.
- "dataType": one of ["string", "number", "date", "boolean"] (optional, recommended)

Valid operators per field:
- totalSpends, visitCount (numbers): EQUALS, NOT_EQUALS, GREATER_THAN, LESS_THAN
- lastActiveDate (date): OLDER_THAN_DAYS, IN_LAST_DAYS (value = days), or EQUALS, NOT_EQUALS, GREATER_THAN, LESS_THAN with an ISO date
- name, email (strings): EQUALS, NOT_EQUALS, CONTAINS, STARTS_WITH, ENDS_WITH

Example:
{json.dumps(_EXAMPLE_RULE_SET, indent=2)}

If the description cannot be translated into this structure, answer {{"error": "Could not translate prompt accurately."}}
Do not write anything outside the JSON object."""

SEGMENT_RULES_USER_PROMPT = (
    'Convert the following description into the JSON rule set format: "{prompt}"'
)

CAMPAIGN_SUMMARY_PROMPT = """You are a marketing analytics assistant. Write a short, insightful summary of this campaign's performance in a professional tone. Highlight what went well, what could be improved, and whether it reached its audience.

Campaign details:
- Name: {name}
- Status: {status}
- Audience size: {audience_size}
- Messages sent successfully: {sent_count}
- Messages failed: {failed_count}
- Delivery log breakdown: {status_counts}
- Message template: "{message_template}"

Avoid technical jargon. The summary is for a marketing manager."""

CAMPAIGN_TAGS_PROMPT = """You are an expert marketing strategist.

Based on this campaign, suggest 1 to 3 short high-level marketing tags describing its purpose (e.g. "Win-back", "Loyalty", "Reactivation", "Upsell", "Engagement").

Campaign information:
- Name: {name}
- Status: {status}
- Audience rules: {audience_rules}
- Message template: "{message_template}"
- Audience size: {audience_size}
- Sent: {sent_count}
- Failed: {failed_count}

Answer only with a JSON array of strings."""

MESSAGE_SUGGESTIONS_SYSTEM_PROMPT = """You write marketing messages for customer campaigns.
Write {count} distinct message variants that are short, engaging and fit the campaign objective and audience.
Use a {tone} tone.
Messages may use the placeholders {{{{name}}}}, {{{{email}}}}, {{{{totalSpends}}}} and {{{{visitCount}}}} for personalization.
Answer with a single JSON array of strings, one string per message, for example:
["Hi {{{{name}}}}, discover our new collection!", "A special offer for you, {{{{name}}}}!"]
Do not write anything outside the JSON array.
If you cannot write suitable messages, answer []."""

MESSAGE_SUGGESTIONS_USER_PROMPT = 'Campaign objective: "{objective}"'

MESSAGE_SUGGESTIONS_AUDIENCE_LINE = 'Target audience: "{audience}"'
