from verifyforge.cli import main

main()
