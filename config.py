"""
Configurazione centralizzata - modifica qui colonne, mapping canali e parametri.
"""

# Commissione di gestione di default (26% del revenu net proprietario)
DEFAULT_COMMISSION_RATE = 0.26

# Export Krossbooking: colonne 0-indexed (A=0, B=1, ...)
EXPORT_COL_MAP = {
    "arrivee":              2,   # C - check-in
    "depart":               3,   # D - check-out
    "nuits":                4,   # E - notti
    "voyageurs":            7,   # H - numero ospiti
    "portail":             16,   # Q - canale / portale
    "voyageur":            18,   # S - nome ospite (o PROPRIETAIRE)
    "total_paye":          22,   # W - totale pagato dall'ospite
    "prix_sejour":         23,   # X - prezzo soggiorno
    "taxe_sejour":         24,   # Y - tassa di soggiorno
    "frais_menage":        25,   # Z - pulizie
    "commission_plateforme": 38, # AM - commissione piattaforma
    "frais_paiement":      39,   # AN - costo pagamento
}

# Righe più corte di così vengono scartate con un avviso
EXPORT_MIN_COLUMNS = 40

# Nome ospite segnaposto per i soggiorni del proprietario
OWNER_SENTINEL = "PROPRIETAIRE"

# Formati data accettati (export Krossbooking e API)
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y-%m-%d %H:%M:%S")

# Mapping testo canale → canale canonico (substring case-insensitive, in ordine)
CHANNEL_KEYWORDS = (
    ("airbnb", "airbnb"),
    ("booking", "booking"),
    ("abritel", "abritel"),
    ("homeaway", "abritel"),
    ("propri", "owner_direct"),
    ("prop0", "owner_direct"),
    ("hellokeys", "direct"),
    ("hello keys", "direct"),
    ("direct", "direct"),
)

# Canali che incassano e versano da soli la tassa di soggiorno
TAX_EXEMPT_CHANNELS = ("airbnb", "booking")

# Mapping codice stato → stato canonico
STATUS_MAP = {
    "CONFIRMED": "confirmed",
    "CONF": "confirmed",
    "PENDING": "pending",
    "CANC": "cancelled",
    "CANCELLED": "cancelled",
    "PROPRI": "owner_block",
    "PROP0": "owner_block",
}

# Bonifici: sorgenti di pagamento e instradamento
PAYMENT_SOURCES = ("stripe", "airbnb")
AIRBNB_SOURCE = "airbnb"
DEFAULT_SOURCE = "stripe"

# Sorgente prenotazioni (proxy HTTP)
RESERVATION_CACHE_SECONDS = 120
RESERVATION_TIMEOUT_SECONDS = 30.0

# Google Sheets: fogli dei relevés salvati e delle loro righe
SHEET_STATEMENTS = "releves"
SHEET_STATEMENT_LINES = "releve_righe"

# Limite di caratteri per cella imposto da Google Sheets
SHEET_CELL_LIMIT = 50000

# Tipi di blocco proprietario (etichetta → con/senza pulizie nel codice stato)
BLOCK_TYPES = ("Séjour propriétaire", "Fermer", "Entretien")
