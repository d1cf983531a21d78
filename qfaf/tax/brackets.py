# 2026 Federal Tax Brackets by Filing Status (IRS Rev. Proc. 2025-32, incl. OBBBA)
# Format: List of (upper_limit, marginal_rate); last tuple uses float('inf')
FEDERAL_TAX_BRACKETS_2026 = {
    'mfj': [
        (24800, 0.10), (100800, 0.12), (211400, 0.22), (403550, 0.24),
        (512450, 0.32), (768700, 0.35), (float('inf'), 0.37)
    ],
    'single': [
        (12400, 0.10), (50400, 0.12), (105700, 0.22), (201775, 0.24),
        (256225, 0.32), (640600, 0.35), (float('inf'), 0.37)
    ],
    'mfs': [
        (12400, 0.10), (50400, 0.12), (105700, 0.22), (201775, 0.24),
        (256225, 0.32), (384350, 0.35), (float('inf'), 0.37)
    ],
    'hoh': [
        (17650, 0.10), (67450, 0.12), (105700, 0.22), (201775, 0.24),
        (256225, 0.32), (640600, 0.35), (float('inf'), 0.37)
    ],
}

# LTCG brackets are inclusive at the top: income equal to a ceiling stays in it
LTCG_BRACKETS_2026 = {
    'mfj': [
        (96700, 0.00), (610350, 0.15), (float('inf'), 0.20)
    ],
    'single': [
        (48350, 0.00), (542050, 0.15), (float('inf'), 0.20)
    ],
    'mfs': [
        (48350, 0.00), (305175, 0.15), (float('inf'), 0.20)
    ],
    'hoh': [
        (64750, 0.00), (578100, 0.15), (float('inf'), 0.20)
    ],
}

# Net Investment Income Tax applies strictly above these thresholds (unindexed)
NIIT_THRESHOLD_2026 = {
    'single': 200000,
    'mfj': 250000,
    'mfs': 125000,
    'hoh': 200000,
}

NIIT_RATE = 0.038

# Top marginal state income tax rates (2026). Flat-rate model, no brackets.
STATE_TAX_RATES = {
    # No income tax
    'AK': {'name': 'Alaska', 'rate': 0.0},
    'FL': {'name': 'Florida', 'rate': 0.0},
    'NV': {'name': 'Nevada', 'rate': 0.0},
    'NH': {'name': 'New Hampshire', 'rate': 0.0},
    'SD': {'name': 'South Dakota', 'rate': 0.0},
    'TN': {'name': 'Tennessee', 'rate': 0.0},
    'TX': {'name': 'Texas', 'rate': 0.0},
    'WA': {'name': 'Washington', 'rate': 0.0},  # 7% capital gains tax not modeled
    'WY': {'name': 'Wyoming', 'rate': 0.0},

    'AL': {'name': 'Alabama', 'rate': 0.05},
    'AZ': {'name': 'Arizona', 'rate': 0.025},
    'AR': {'name': 'Arkansas', 'rate': 0.039},
    'CA': {'name': 'California', 'rate': 0.133},  # 12.3% + 1% mental health surtax
    'CO': {'name': 'Colorado', 'rate': 0.044},
    'CT': {'name': 'Connecticut', 'rate': 0.0699},
    'DE': {'name': 'Delaware', 'rate': 0.066},
    'DC': {'name': 'District of Columbia', 'rate': 0.1075},
    'GA': {'name': 'Georgia', 'rate': 0.0519},
    'HI': {'name': 'Hawaii', 'rate': 0.11},
    'ID': {'name': 'Idaho', 'rate': 0.058},
    'IL': {'name': 'Illinois', 'rate': 0.0495},
    'IN': {'name': 'Indiana', 'rate': 0.0295},
    'IA': {'name': 'Iowa', 'rate': 0.0375},
    'KS': {'name': 'Kansas', 'rate': 0.057},
    'KY': {'name': 'Kentucky', 'rate': 0.04},
    'LA': {'name': 'Louisiana', 'rate': 0.03},
    'ME': {'name': 'Maine', 'rate': 0.0715},
    'MD': {'name': 'Maryland', 'rate': 0.0575},  # plus local taxes
    'MA': {'name': 'Massachusetts', 'rate': 0.09},  # 5% + 4% millionaire surtax
    'MI': {'name': 'Michigan', 'rate': 0.0405},
    'MN': {'name': 'Minnesota', 'rate': 0.0985},
    'MS': {'name': 'Mississippi', 'rate': 0.04},
    'MO': {'name': 'Missouri', 'rate': 0.048},
    'MT': {'name': 'Montana', 'rate': 0.059},
    'NE': {'name': 'Nebraska', 'rate': 0.0455},
    'NJ': {'name': 'New Jersey', 'rate': 0.1075},
    'NM': {'name': 'New Mexico', 'rate': 0.059},
    'NY': {'name': 'New York', 'rate': 0.109},
    'NC': {'name': 'North Carolina', 'rate': 0.0399},
    'ND': {'name': 'North Dakota', 'rate': 0.0225},
    'OH': {'name': 'Ohio', 'rate': 0.0275},
    'OK': {'name': 'Oklahoma', 'rate': 0.0475},
    'OR': {'name': 'Oregon', 'rate': 0.099},
    'PA': {'name': 'Pennsylvania', 'rate': 0.0307},
    'RI': {'name': 'Rhode Island', 'rate': 0.0599},
    'SC': {'name': 'South Carolina', 'rate': 0.064},
    'UT': {'name': 'Utah', 'rate': 0.0465},
    'VT': {'name': 'Vermont', 'rate': 0.0875},
    'VA': {'name': 'Virginia', 'rate': 0.0575},
    'WV': {'name': 'West Virginia', 'rate': 0.047},
    'WI': {'name': 'Wisconsin', 'rate': 0.0765},
}

# Pseudo-code for a user-entered flat state rate
OTHER_STATE_CODE = 'OTHER'
