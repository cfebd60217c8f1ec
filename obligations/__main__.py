from obligations.main import main

main()
