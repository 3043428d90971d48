"""Trip domain logic: validation, overlap detection, status machine and permissions."""
