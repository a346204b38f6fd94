from nnet_train.cli import main

main()
