"""
Keyword-based email categorization

Sorts inbound mail into spending / billing / leads / other / junk by counting
keyword hits over the lower-cased subject and body, then pulls out the
amounts, invoice numbers and contact details the category implies.
"""
import re

SPENDING_KEYWORDS = [
    'receipt', 'invoice', 'payment', 'paid', 'charge', 'cost', 'expense',
    'purchase', 'bought', 'order',
]
BILLING_KEYWORDS = [
    'bill', 'statement', 'due', 'owing', 'balance', 'outstanding', 'reminder',
]
LEAD_KEYWORDS = [
    'quote', 'estimate', 'interested', 'need service', 'looking for',
    'contact me', 'call me', 'schedule',
]
JUNK_KEYWORDS = [
    'unsubscribe', 'newsletter', 'promotional', 'advertisement', 'marketing',
    'special offer', 'limited time', 'free trial', 'subscribe', 'click here',
    'buy now', 'sale', 'discount', 'deal', 'spam', 'no-reply', 'noreply',
]
NON_BUSINESS_KEYWORDS = [
    'security alert', 'sign-in', 'verification code', 'password reset',
    'account recovery', 'login attempt', 'confirm your email',
]

JUNK_THRESHOLD = 2
MIN_KEYWORD_SCORE = 1
MAX_REASONABLE_AMOUNT = 1000000

AMOUNT_PATTERNS = [
    re.compile(r'\$\s*(\d+(?:\.\d{2})?)'),
    re.compile(r'(\d+(?:\.\d{2})?)\s*dollars?', re.IGNORECASE),
    re.compile(r'total:?\s*\$?(\d+(?:\.\d{2})?)', re.IGNORECASE),
    re.compile(r'amount:?\s*\$?(\d+(?:\.\d{2})?)', re.IGNORECASE),
    re.compile(r'price:?\s*\$?(\d+(?:\.\d{2})?)', re.IGNORECASE),
]
VENDOR_PATTERNS = [
    re.compile(r'(?:from|at|with)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)', re.IGNORECASE),
    re.compile(r'([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+(?:receipt|invoice|charge)', re.IGNORECASE),
]
NOT_VENDORS = {'security', 'alert', 'google', 'verification', 'account'}

INVOICE_NUMBER_RE = re.compile(r'(?:invoice|bill|statement)\s*#?\s*([A-Z0-9-]+)', re.IGNORECASE)
AMOUNT_DUE_RE = re.compile(r'(?:total|amount|balance|due)\s*\$?(\d+(?:\.\d{2})?)', re.IGNORECASE)
DUE_DATE_RE = re.compile(r'(?:due|by)\s+(\d{1,2}[-/]\d{1,2}[-/]\d{2,4}|\w+\s+\d{1,2},?\s+\d{2,4})', re.IGNORECASE)

NAME_RE = re.compile(r'(?:my name is|this is|i am)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)', re.IGNORECASE)
EMAIL_RE = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
PHONE_RE = re.compile(r'(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})')
COMPANY_RE = re.compile(
    r'(?:from|at|with)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:LLC|Inc|Corp|Company|LLP|Ltd)?)',
    re.IGNORECASE
)

SERVICE_TYPES = [
    ('painting', ('painting', 'paint')),
    ('plumbing', ('plumbing',)),
    ('electrical', ('electrical',)),
    ('hvac', ('hvac', 'heating')),
]


def keyword_score(content, keywords):
    return sum(1 for keyword in keywords if keyword in content)


def extract_spending_data(content):
    amount = None
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(content)
        if match:
            value = float(match.group(1))
            # Rules out timestamps and phone numbers read as money
            if 0 < value < MAX_REASONABLE_AMOUNT:
                amount = value
                break

    vendor = None
    for pattern in VENDOR_PATTERNS:
        match = pattern.search(content)
        if match:
            candidate = match.group(1)
            if ('http' not in candidate and 'www' not in candidate
                    and candidate.lower() not in NOT_VENDORS and len(candidate) > 2):
                vendor = candidate
                break

    category = None
    if 'material' in content or 'supply' in content:
        category = 'materials'
    elif 'equipment' in content or 'tool' in content:
        category = 'equipment'
    elif 'service' in content or 'labor' in content:
        category = 'services'

    return {
        'amount': amount or 0,
        'vendor': vendor,
        'category': category,
        'description': content[:200] + ('...' if len(content) > 200 else ''),
    }


def extract_billing_data(content):
    invoice_match = INVOICE_NUMBER_RE.search(content)
    amount_match = AMOUNT_DUE_RE.search(content)
    date_match = DUE_DATE_RE.search(content)

    return {
        'invoice_number': invoice_match.group(1) if invoice_match else None,
        'amount': float(amount_match.group(1)) if amount_match else 0,
        'due_date': date_match.group(1) if date_match else None,
    }


def extract_lead_data(content):
    name_match = NAME_RE.search(content)
    email_match = EMAIL_RE.search(content)
    phone_match = PHONE_RE.search(content)
    company_match = COMPANY_RE.search(content)

    service_type = None
    for name, words in SERVICE_TYPES:
        if any(word in content for word in words):
            service_type = name
            break

    return {
        'contact_name': name_match.group(1) if name_match else None,
        'company_name': company_match.group(1).strip() if company_match else None,
        'contact_email': email_match.group(0) if email_match else None,
        'contact_phone': phone_match.group(0) if phone_match else None,
        'service_type': service_type,
    }


def _has_lead_contact(lead_data, include_company=True):
    if lead_data.get('contact_name') or lead_data.get('contact_email'):
        return True
    return include_company and bool(lead_data.get('company_name'))


def categorize_email_with_keywords(subject=None, body_text=None, body_html=None):
    """
    Categorize an email from its text alone.

    Returns a dict with ``category`` (spending, billing, leads, other, junk),
    ``confidence`` (0-1), ``extracted_data`` (keyed by category, or None)
    and a human-readable ``reasoning``.
    """
    content = f"{subject or ''} {body_text or ''} {body_html or ''}".lower()

    spending_score = keyword_score(content, SPENDING_KEYWORDS)
    billing_score = keyword_score(content, BILLING_KEYWORDS)
    lead_score = keyword_score(content, LEAD_KEYWORDS)
    junk_score = keyword_score(content, JUNK_KEYWORDS)

    if junk_score >= JUNK_THRESHOLD:
        return {
            'category': 'junk',
            'confidence': min(0.9, 0.6 + junk_score * 0.1),
            'extracted_data': None,
            'reasoning': (
                f'Detected {junk_score} junk/spam keywords. '
                'This appears to be promotional or marketing content.'
            ),
        }

    if any(keyword in content for keyword in NON_BUSINESS_KEYWORDS):
        return {
            'category': 'other',
            'confidence': 0.8,
            'extracted_data': None,
            'reasoning': 'Email appears to be a security/notification email, not business-related',
        }

    category = 'other'
    confidence = 0.4
    extracted_data = None

    if spending_score >= MIN_KEYWORD_SCORE:
        spending = extract_spending_data(content)
        if spending['amount'] > 0:
            category = 'spending'
            confidence = min(0.85, 0.5 + spending_score * 0.15)
            extracted_data = {'spending': spending}

    if billing_score >= MIN_KEYWORD_SCORE and (extracted_data is None or confidence < 0.6):
        billing = extract_billing_data(content)
        if billing['amount'] > 0:
            category = 'billing'
            confidence = min(0.85, 0.5 + billing_score * 0.15)
            extracted_data = {'billing': billing}

    if lead_score >= MIN_KEYWORD_SCORE and (extracted_data is None or confidence < 0.6):
        leads = extract_lead_data(content)
        if _has_lead_contact(leads):
            category = 'leads'
            confidence = min(0.85, 0.5 + lead_score * 0.15)
            extracted_data = {'leads': leads}

    # No extraction succeeded: fall back to whichever score dominates
    if extracted_data is None:
        if (billing_score >= MIN_KEYWORD_SCORE
                and billing_score > spending_score and billing_score > lead_score):
            billing = extract_billing_data(content)
            if billing['amount'] >= 0.01:
                category = 'billing'
                confidence = min(0.8, 0.4 + (billing_score - 1) * 0.1)
                extracted_data = {'billing': billing}
            else:
                category, confidence = 'other', 0.5
        elif (lead_score >= MIN_KEYWORD_SCORE
                and lead_score > spending_score and lead_score > billing_score):
            leads = extract_lead_data(content)
            if _has_lead_contact(leads, include_company=False):
                category = 'leads'
                confidence = min(0.8, 0.4 + (lead_score - 1) * 0.1)
                extracted_data = {'leads': leads}
            else:
                category, confidence = 'other', 0.5

    if category == 'other':
        outcome = 'No clear business category identified.'
    else:
        outcome = f'Categorized as {category} with {round(confidence * 100)}% confidence.'

    return {
        'category': category,
        'confidence': confidence,
        'extracted_data': extracted_data,
        'reasoning': (
            f'Smart categorization: Found {spending_score} spending keywords, '
            f'{billing_score} billing keywords, {lead_score} lead keywords, '
            f'{junk_score} junk keywords. {outcome}'
        ),
    }
