ADMIN = "admin"
ALICE = "0xalice"
BOB = "0xbob"
