# Vault API - local REST surface for the settings UI
