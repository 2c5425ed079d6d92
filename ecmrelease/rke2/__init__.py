"""RKE2 helpers: reading release image lists and listing Go releases."""