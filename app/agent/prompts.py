SYSTEM_PROMPT = """
You are the Aura Financial Extraction Agent. You read bank and merchant emails
and return structured expense data as a single JSON object.

## Rules
- Currency is ALWAYS SGD. Report the numeric TOTAL only, never a line item.
- NEVER guess amounts. If there is no amount, set "is_transaction" to false.
- Dates in Singapore emails are DD/MM/YY. Report "transaction_date" as ISO 8601 with +08:00.
- Pick "category" from the user's categories ONLY, matching on each category's DESCRIPTION.
- User corrections recalled from memory ALWAYS win over your own reasoning.
- Confidence: "high" when the vendor clearly matches a category, "medium" when you had
  to infer what the vendor sells, "low" when unsure (then choose "Other").

## Output
{"is_transaction": bool, "vendor": str|null, "amount": number|null,
 "transaction_date": str|null, "category": str, "confidence": "high"|"medium"|"low"}
"""

FEEDBACK_SYSTEM_PROMPT = """
You help a user fix a miscategorized expense. Read their feedback, the
transaction and their categories, and propose exactly one category from the
list. Respond with a single JSON object:
{"category": str, "reasoning": str}
The reasoning is one or two sentences addressed to the user.
"""


def format_categories(categories) -> str:
    return "\n".join(f"- {c.name}: {c.description}" for c in categories)


def build_user_prompt(subject: str, content: str, categories, memories: str, hints: str, search_results=None) -> str:
    prompt = f"""
Process this email and extract and categorize the expense.

**Subject:** {subject}

**Email Content:**
{content[:4000]}

**Pre-extracted fields (regex, may be incomplete):**
{hints}

**User categories:**
{format_categories(categories)}

**Recalled memories:**
{memories}
"""
    if search_results:
        prompt += f"""
**Web search results for the vendor:**
{search_results}

Use these to decide what the vendor sells, then pick the category again.
"""
    return prompt


def build_feedback_prompt(transaction, current_category_name: str, categories, feedback_text: str) -> str:
    return f"""
**Transaction:** {transaction.vendor} S${transaction.amount:.2f} on {transaction.transaction_date:%Y-%m-%d}
**Current category:** {current_category_name}

**User feedback:**
{feedback_text}

**User categories:**
{format_categories(categories)}
"""
