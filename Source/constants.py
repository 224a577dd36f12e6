"""
Receipt vocabulary and wizard constants for Splitbill
"""

# Lines dropped before price extraction (matched against the stripped line)
SKIP_PATTERNS = [
    r'^(?:ОБЩА\s+)?СУМА\b',
    r'^ОБЩО\b',
    r'^TOTA[LN]\b',
    r'^В\s+БРОЙ\b',
    r'^(?:С\s+)?КАРТА\b',
    r'^БОН:',
    r'#сума',
    r'^Пг\.#\d+\s+СУМА',
    r'^\d+\s+артикула?$',
]

# Tokens that may follow a price
CURRENCY_TOKENS = ['€', 'eur', 'лв.', 'лв', 'bgn']

# <digits, spaces allowed>[.,]<2 digits>
PRICE_PATTERN = r'(\d[\d ]*)[.,](\d{2})(?!\d)'

# "3x Coffee", "2,5 X Coffee"
QTY_PREFIX_PATTERN = r'^(\d+)(?:[.,]\d+)?\s*[xX]\s+'

# "Cola 3x", some registers print the count after the name
QTY_SUFFIX_PATTERN = r'\s+(\d+)(?:[.,]\d+)?\s*[xX]$'

MIN_LABEL_LENGTH = 2

STEPS = ('upload', 'items', 'people', 'assign', 'summary')
FIRST_STEP = STEPS[0]

STEP_TITLES = {
    'upload': 'Снимка',
    'items': 'Артикули',
    'people': 'Хора',
    'assign': 'Разпределение',
    'summary': 'Сметка',
}

ITEMS_GATE_MESSAGE = 'Добави поне един ред с цена преди да продължиш.'
PEOPLE_GATE_MESSAGE = 'Добави поне един човек преди да продължиш.'
SKIP_STEP_MESSAGE = 'Стъпките се минават една по една.'
